"""Stress release script."""

from models.guided_models import (
	FollowUpTrigger,
	GuidedPrompt,
	GuidedSessionDefinition,
	OutputProcessing,
	SuggestWhen,
)

STRESS_RELEASE = GuidedSessionDefinition(
	id="stress_release",
	name="Stress Release",
	description="Let go of tension and find calm",
	estimated_minutes=8,
	suggest_when=SuggestWhen(mood_below=0.5),
	opening_message=(
		"Let's take a few minutes to release some stress. Find a comfortable position and take a deep breath with me."
	),
	prompts=(
		GuidedPrompt(
			id="breath_check",
			kind="open",
			prompt="Take three slow, deep breaths. In through your nose, out through your mouth. How does that feel?",
		),
		GuidedPrompt(
			id="stress_source",
			kind="open",
			prompt="What's been causing you the most stress lately? Just let it out, no judgment here.",
			follow_up_triggers=(
				FollowUpTrigger(
					keywords=("work", "job", "boss", "deadline", "project"),
					follow_up_prompt="Work stress can really pile up. What part of it feels most pressing right now?",
				),
				FollowUpTrigger(
					keywords=("family", "kids", "partner", "parents", "home"),
					follow_up_prompt="Home life can be a lot. What's the main thing you wish was different?",
				),
				FollowUpTrigger(
					keywords=("money", "bills", "financial", "expensive"),
					follow_up_prompt="Financial stress is tough to carry. What would help you feel more secure?",
				),
				FollowUpTrigger(
					keywords=("health", "sick", "tired", "exhausted"),
					follow_up_prompt="Your health is so important. What's your body trying to tell you?",
				),
			),
		),
		GuidedPrompt(
			id="body_tension",
			kind="open",
			prompt="Scan your body for a moment. Where are you holding tension? Maybe your shoulders, jaw, or back?",
		),
		GuidedPrompt(
			id="release_exercise",
			kind="open",
			prompt=(
				"Try tensing that area for 5 seconds, then releasing. Let's do it together. "
				"Tense... and release. How does that feel?"
			),
		),
		GuidedPrompt(
			id="control_check",
			kind="reflection",
			prompt=(
				"Of everything stressing you out, what's actually within your control? "
				"And what do you need to let go of?"
			),
		),
		GuidedPrompt(
			id="support_system",
			kind="open",
			prompt="Who or what helps you feel supported when things get hard? Have you reached out to them lately?",
		),
		GuidedPrompt(
			id="one_thing_less",
			kind="open",
			prompt="What's one thing on your plate that you could remove, delegate, or postpone this week?",
			follow_up_triggers=(
				FollowUpTrigger(
					keywords=("nothing", "can't", "have to", "must"),
					follow_up_prompt=(
						"Sometimes we feel trapped by obligations. "
						"Is there anything you're doing out of habit rather than necessity?"
					),
				),
			),
		),
		GuidedPrompt(
			id="self_care_action",
			kind="open",
			prompt="What's one small act of self-care you can do today? Something just for you.",
		),
		GuidedPrompt(
			id="final_breath",
			kind="open",
			prompt="Let's take one more deep breath together. In... and out. How are you feeling now?",
		),
	),
	closing_message=(
		"Remember, you don't have to carry everything at once. "
		"Take things one step at a time, and be kind to yourself."
	),
	output_processing=OutputProcessing(
		summary_prompt=(
			"Summarize this stress release session:\n"
			"- What the main sources of stress were\n"
			"- Any insights about control and letting go\n"
			"- The self-care action they committed to\n"
			"- Any noticeable shift in how they felt\n"
			"Keep the tone calming and encouraging."
		),
		therapeutic_framework="general",
	),
)
