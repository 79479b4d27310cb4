"""Goal-setting script."""

from models.guided_models import (
	FollowUpTrigger,
	GuidedPrompt,
	GuidedSessionDefinition,
	OutputProcessing,
	SkipCondition,
	SuggestWhen,
)

GOAL_SETTING = GuidedSessionDefinition(
	id="goal_setting",
	name="Goal Setting",
	description="Set meaningful goals and create action plans",
	estimated_minutes=7,
	suggest_when=SuggestWhen(time_of_day=("morning", "afternoon"), day_of_week=(0, 1)),
	opening_message="Let's spend some time thinking about what you want to achieve. This can be anything, big or small.",
	prompts=(
		GuidedPrompt(
			id="current_goals_check",
			kind="reflection",
			prompt="You've been working on {activeGoal}. How's that going? Do you want to continue with it or shift focus?",
			skip_conditions=(SkipCondition.NO_OPEN_GOALS,),
		),
		GuidedPrompt(
			id="area_of_focus",
			kind="open",
			prompt=(
				"What area of your life would you like to focus on? This could be health, relationships, "
				"work, personal growth, or anything else."
			),
			follow_up_triggers=(
				FollowUpTrigger(
					keywords=("work", "career", "job", "professional"),
					follow_up_prompt=(
						"Work goals can be really motivating. What specifically about your work life would you like to improve?"
					),
				),
				FollowUpTrigger(
					keywords=("health", "fitness", "exercise", "weight", "sleep"),
					follow_up_prompt="Health is such an important foundation. What does success in this area look like for you?",
				),
				FollowUpTrigger(
					keywords=("relationship", "family", "friends", "partner"),
					follow_up_prompt="Relationships really matter. Who or what relationship would you like to nurture?",
				),
			),
		),
		GuidedPrompt(
			id="specific_goal",
			kind="open",
			prompt="What's a specific goal you'd like to set? Try to be as concrete as you can.",
			follow_up_triggers=(
				FollowUpTrigger(
					keywords=("maybe", "not sure", "I think", "kind of"),
					follow_up_prompt=(
						"It's okay to start vague. What would achieving this look like? How would you know you succeeded?"
					),
				),
			),
		),
		GuidedPrompt(
			id="why_matters",
			kind="reflection",
			prompt="Why does this goal matter to you? What will be different when you achieve it?",
		),
		GuidedPrompt(
			id="first_step",
			kind="open",
			prompt="What's one small step you could take this week to move toward this goal?",
			follow_up_triggers=(
				FollowUpTrigger(
					keywords=("don't know", "not sure", "hard", "difficult"),
					follow_up_prompt=(
						"Sometimes the first step is just thinking about it more. What would make it feel more doable?"
					),
				),
			),
		),
		GuidedPrompt(
			id="obstacles",
			kind="open",
			prompt="What might get in the way? And how could you handle that if it comes up?",
		),
		GuidedPrompt(
			id="timeline",
			kind="choice",
			prompt=(
				"When would you like to check back in on this goal? "
				"Would you say in a few days, next week, or in a month?"
			),
		),
	),
	closing_message=(
		"You've set a meaningful goal. Remember, progress matters more than perfection. I'll help you track this."
	),
	output_processing=OutputProcessing(
		summary_prompt=(
			"Summarize this goal-setting session, extracting:\n"
			"- The specific goal the user set\n"
			"- Why it matters to them\n"
			"- Their planned first step\n"
			"- Any obstacles they identified\n"
			"Keep it actionable and encouraging."
		),
		therapeutic_framework="general",
	),
)
