"""Weekly review script."""

from models.guided_models import (
	FollowUpTrigger,
	GuidedPrompt,
	GuidedSessionDefinition,
	OutputProcessing,
	SkipCondition,
	SuggestWhen,
)

WEEKLY_REVIEW = GuidedSessionDefinition(
	id="weekly_review",
	name="Weekly Review",
	description="Reflect on your week and prepare for the next",
	estimated_minutes=10,
	suggest_when=SuggestWhen(time_of_day=("afternoon", "evening"), day_of_week=(0, 6)),
	opening_message="Let's take some time to look back at your week and think about what's ahead.",
	prompts=(
		GuidedPrompt(
			id="week_overview",
			kind="open",
			prompt="Looking back at this past week, what stands out to you? It could be anything, good or challenging.",
		),
		GuidedPrompt(
			id="wins",
			kind="open",
			prompt="What's something you accomplished or are proud of this week, even if it seems small?",
			follow_up_triggers=(
				FollowUpTrigger(
					keywords=("nothing", "didn't", "failed"),
					follow_up_prompt=(
						"Sometimes we overlook our own progress. Did you show up somewhere difficult? "
						"Handle something hard? That counts too."
					),
				),
			),
		),
		GuidedPrompt(
			id="challenges",
			kind="open",
			prompt="What was the most challenging part of your week? How did you handle it?",
			follow_up_triggers=(
				FollowUpTrigger(
					keywords=("struggle", "hard", "difficult", "couldn't"),
					follow_up_prompt="Challenges teach us a lot. What did you learn about yourself from this experience?",
				),
			),
		),
		GuidedPrompt(
			id="goal_progress",
			kind="reflection",
			prompt="You've been working on {activeGoal}. How did you make progress on that this week?",
			skip_conditions=(SkipCondition.NO_OPEN_GOALS,),
		),
		GuidedPrompt(
			id="mood_reflection",
			kind="reflection",
			prompt="Your mood this week has been {moodTrend}. What do you think influenced that?",
		),
		GuidedPrompt(
			id="gratitude",
			kind="open",
			prompt="What's something or someone you're grateful for from this week?",
		),
		GuidedPrompt(
			id="letting_go",
			kind="open",
			prompt="Is there anything from this week you want to let go of, so you don't carry it forward?",
		),
		GuidedPrompt(
			id="next_week_intention",
			kind="open",
			prompt="What's one intention or focus you'd like to carry into next week?",
		),
		GuidedPrompt(
			id="self_care_plan",
			kind="open",
			prompt="What's one way you'll take care of yourself next week?",
		),
		GuidedPrompt(
			id="closing_thought",
			kind="open",
			prompt="Any final thoughts or anything else you want to capture before we wrap up?",
		),
	),
	closing_message=(
		"You've done a great job reflecting on your week. Use these insights to guide you forward. See you next week!"
	),
	output_processing=OutputProcessing(
		summary_prompt=(
			"Create a comprehensive weekly review summary:\n"
			"- Key highlights and wins from the week\n"
			"- Main challenges faced and how they were handled\n"
			"- Progress on goals\n"
			"- The user's intention for next week\n"
			"- Self-care plans\n"
			"Format as a meaningful reflection that the user can look back on."
		),
		therapeutic_framework="general",
	),
)
