"""Evening reflection script."""

from models.guided_models import (
	FollowUpTrigger,
	GuidedPrompt,
	GuidedSessionDefinition,
	OutputProcessing,
	SkipCondition,
	SuggestWhen,
)

EVENING_REFLECTION = GuidedSessionDefinition(
	id="evening_reflection",
	name="Evening Reflection",
	description="Process your day and prepare for restful sleep",
	estimated_minutes=7,
	suggest_when=SuggestWhen(time_of_day=("evening", "night")),
	opening_message="Hey there. Let's take a few minutes to reflect on your day before winding down.",
	prompts=(
		GuidedPrompt(id="day_overview", kind="open", prompt="How would you describe your day in a few words?"),
		GuidedPrompt(
			id="highlight",
			kind="open",
			prompt="What was the best part of your day, even if it was something small?",
		),
		GuidedPrompt(
			id="challenge",
			kind="open",
			prompt="Was there anything that felt challenging or difficult today?",
			follow_up_triggers=(
				FollowUpTrigger(
					keywords=("argument", "fight", "conflict", "upset", "frustrated"),
					follow_up_prompt="That sounds tough. How are you feeling about it now?",
				),
				FollowUpTrigger(
					keywords=("nothing", "not really", "nope"),
					follow_up_prompt="That's good to hear. Sounds like it was a relatively smooth day.",
				),
			),
		),
		GuidedPrompt(
			id="situation_update",
			kind="reflection",
			prompt="You've been dealing with {openSituation}. Any updates on that?",
			skip_conditions=(SkipCondition.NO_OPEN_SITUATIONS,),
		),
		GuidedPrompt(
			id="learned",
			kind="open",
			prompt="Did you learn anything about yourself today, or notice anything new?",
		),
		GuidedPrompt(id="grateful", kind="open", prompt="What's one thing you're grateful for from today?"),
		GuidedPrompt(
			id="tomorrow",
			kind="open",
			prompt="Is there anything you want to carry forward or let go of for tomorrow?",
		),
		GuidedPrompt(
			id="closing",
			kind="open",
			prompt="Anything else you want to get off your chest before bed?",
		),
	),
	closing_message="Thanks for reflecting with me. Sleep well, and I'll be here whenever you need to talk.",
	output_processing=OutputProcessing(
		summary_prompt=(
			"Summarize this evening reflection in 2-3 sentences, capturing:\n"
			"- The overall tone of their day (good, challenging, mixed)\n"
			"- The highlight they mentioned\n"
			"- Any challenges or things they're processing\n"
			"- What they're grateful for\n"
			"Keep it empathetic and supportive."
		),
		therapeutic_framework="general",
	),
)
