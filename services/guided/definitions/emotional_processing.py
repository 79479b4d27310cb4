"""Emotional processing script."""

from models.guided_models import (
	FollowUpTrigger,
	GuidedPrompt,
	GuidedSessionDefinition,
	OutputProcessing,
	SkipCondition,
	SuggestWhen,
)

EMOTIONAL_PROCESSING = GuidedSessionDefinition(
	id="emotional_processing",
	name="Emotional Processing",
	description="Work through difficult feelings with gentle guidance",
	estimated_minutes=10,
	suggest_when=SuggestWhen(mood_below=0.4),
	opening_message="I'm here to listen. Whatever you're feeling is valid, and we can work through it together.",
	prompts=(
		GuidedPrompt(
			id="current_feeling",
			kind="open",
			prompt="What are you feeling right now? Take your time, there's no rush.",
			follow_up_triggers=(
				FollowUpTrigger(
					keywords=("angry", "frustrated", "furious", "mad"),
					follow_up_prompt="Anger often comes from feeling hurt or unheard. What's underneath that anger?",
				),
				FollowUpTrigger(
					keywords=("sad", "down", "depressed", "hopeless"),
					follow_up_prompt="I hear you. Sadness is heavy. What do you think is weighing on you the most?",
				),
				FollowUpTrigger(
					keywords=("anxious", "worried", "scared", "panicking"),
					follow_up_prompt="Anxiety can feel overwhelming. What's the worry that keeps coming back?",
				),
				FollowUpTrigger(
					keywords=("numb", "empty", "nothing", "disconnected"),
					follow_up_prompt="Feeling numb can be a protective response. When did you start feeling this way?",
				),
				FollowUpTrigger(
					keywords=("overwhelmed", "too much", "can't handle"),
					follow_up_prompt=(
						"When everything feels like too much, let's break it down. "
						"What's the one thing weighing on you most right now?"
					),
				),
			),
		),
		GuidedPrompt(
			id="situation_check",
			kind="reflection",
			prompt="You mentioned dealing with {openSituation}. Is that connected to how you're feeling now?",
			skip_conditions=(SkipCondition.NO_OPEN_SITUATIONS,),
		),
		GuidedPrompt(
			id="body_check",
			kind="open",
			prompt=(
				"Take a moment to notice your body. Where do you feel this emotion? "
				"In your chest, stomach, shoulders?"
			),
		),
		GuidedPrompt(
			id="trigger",
			kind="open",
			prompt="What happened that brought this feeling up? Or has it been building over time?",
			follow_up_triggers=(
				FollowUpTrigger(
					keywords=("always", "every time", "never changes"),
					follow_up_prompt="It sounds like this is a pattern. When did you first notice feeling this way?",
				),
			),
		),
		GuidedPrompt(
			id="unmet_need",
			kind="reflection",
			prompt=(
				"Sometimes big emotions point to something we need. What might you be needing right now? "
				"Maybe rest, connection, validation, or something else?"
			),
		),
		GuidedPrompt(
			id="helpful_perspective",
			kind="open",
			prompt="If a close friend were feeling this way, what would you say to them?",
		),
		GuidedPrompt(
			id="one_small_thing",
			kind="open",
			prompt="What's one small thing that might help you feel a little better right now? Even something tiny counts.",
		),
		GuidedPrompt(
			id="closing_check",
			kind="open",
			prompt="How are you feeling now compared to when we started? Anything else you want to share?",
		),
	),
	closing_message=(
		"Thank you for being so open. Working through feelings takes courage. Be gentle with yourself today."
	),
	output_processing=OutputProcessing(
		summary_prompt=(
			"Summarize this emotional processing session with care:\n"
			"- The main emotion(s) the user explored\n"
			"- What triggered or contributed to these feelings\n"
			"- Any insights they had about their needs\n"
			"- What small step they identified to help\n"
			"Keep the tone compassionate and validating."
		),
		therapeutic_framework="act",
	),
)
