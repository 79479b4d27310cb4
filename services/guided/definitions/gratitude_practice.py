"""Gratitude practice script."""

from models.guided_models import (
	FollowUpTrigger,
	GuidedPrompt,
	GuidedSessionDefinition,
	OutputProcessing,
	SuggestWhen,
)

GRATITUDE_PRACTICE = GuidedSessionDefinition(
	id="gratitude_practice",
	name="Gratitude Practice",
	description="Cultivate appreciation for the good in your life",
	estimated_minutes=5,
	suggest_when=SuggestWhen(time_of_day=("morning", "evening"), mood_below=0.5),
	opening_message="Let's take a few moments to notice the good things in your life, big or small.",
	prompts=(
		GuidedPrompt(
			id="warmup",
			kind="open",
			prompt="To start, what's something simple that brought you a moment of peace or comfort recently?",
		),
		GuidedPrompt(
			id="person",
			kind="open",
			prompt="Is there someone in your life you're grateful for right now? It could be anyone, past or present.",
			follow_up_triggers=(
				FollowUpTrigger(
					keywords=("mom", "dad", "parent", "mother", "father", "family"),
					follow_up_prompt="Family can mean so much. What's something specific about them you appreciate?",
				),
				FollowUpTrigger(
					keywords=("friend", "partner", "spouse", "husband", "wife"),
					follow_up_prompt="Those close relationships are special. What do they bring to your life?",
				),
			),
		),
		GuidedPrompt(
			id="experience",
			kind="open",
			prompt="What's a recent experience or moment that made you feel good, even briefly?",
		),
		GuidedPrompt(
			id="self",
			kind="open",
			prompt=(
				"What's something about yourself that you're grateful for? "
				"It could be a quality, skill, or something you did."
			),
			follow_up_triggers=(
				FollowUpTrigger(
					keywords=("I don't know", "nothing", "hard to say", "can't think"),
					follow_up_prompt=(
						"That's okay, it can be hard to acknowledge ourselves. How about something small, "
						"like getting through a tough day or being here right now?"
					),
				),
			),
		),
		GuidedPrompt(
			id="often_overlooked",
			kind="open",
			prompt="What's something in your daily life that you often take for granted but are actually thankful for?",
		),
		GuidedPrompt(
			id="closing",
			kind="open",
			prompt="Taking a breath, how do you feel after reflecting on these things?",
		),
	),
	closing_message=(
		"Thank you for practicing gratitude. Research shows this can genuinely shift how we feel over time. "
		"You're doing something good for yourself."
	),
	output_processing=OutputProcessing(
		summary_prompt=(
			"Create a warm summary of this gratitude practice in 2-3 sentences that:\n"
			"- Highlights the main things they expressed gratitude for\n"
			"- Reflects the positive tone of the practice\n"
			"- Could serve as a reminder of good things in their life\n"
			"Keep it uplifting but genuine."
		),
		therapeutic_framework="general",
	),
)
