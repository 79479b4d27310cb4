"""Morning check-in script."""

from models.guided_models import (
	FollowUpTrigger,
	GuidedPrompt,
	GuidedSessionDefinition,
	OutputProcessing,
	SkipCondition,
	SuggestWhen,
)

MORNING_CHECKIN = GuidedSessionDefinition(
	id="morning_checkin",
	name="Morning Check-in",
	description="Start your day with clarity and intention",
	estimated_minutes=5,
	suggest_when=SuggestWhen(time_of_day=("morning",)),
	opening_message="Good morning! Let's take a few minutes to check in and set your intentions for the day.",
	prompts=(
		GuidedPrompt(
			id="sleep_energy",
			kind="open",
			prompt="How did you sleep last night, and how's your energy level this morning?",
		),
		GuidedPrompt(
			id="yesterday_followup",
			kind="reflection",
			prompt="Yesterday you mentioned {yesterdayHighlight}. How are you feeling about that today?",
			skip_conditions=(SkipCondition.NO_YESTERDAY_HIGHLIGHT,),
		),
		GuidedPrompt(
			id="todays_focus",
			kind="open",
			prompt="What's one thing you'd like to focus on or accomplish today?",
			follow_up_triggers=(
				FollowUpTrigger(
					keywords=("anxious", "worried", "nervous", "stressed", "overwhelmed"),
					follow_up_prompt="I hear some concern there. What's one small step you could take to feel more prepared?",
				),
				FollowUpTrigger(
					keywords=("excited", "looking forward", "can't wait"),
					follow_up_prompt="That sounds exciting! What about it has you most energized?",
				),
			),
		),
		GuidedPrompt(
			id="goal_checkin",
			kind="reflection",
			prompt="You've been working on {activeGoal}. Any thoughts on how that fits into today?",
			skip_conditions=(SkipCondition.NO_OPEN_GOALS,),
		),
		GuidedPrompt(
			id="self_care",
			kind="open",
			prompt="What's one small thing you can do for yourself today?",
		),
		GuidedPrompt(
			id="closing",
			kind="open",
			prompt="Anything else on your mind before we wrap up?",
		),
	),
	closing_message="Have a great day! Remember, you can always come back to journal if anything comes up.",
	output_processing=OutputProcessing(
		summary_prompt=(
			"Summarize this morning check-in in 2-3 sentences, focusing on:\n"
			"- The user's energy/mood state\n"
			"- Their main intention or focus for the day\n"
			"- Any concerns or excitement mentioned\n"
			"Keep it warm and personal."
		),
		therapeutic_framework="general",
	),
)
