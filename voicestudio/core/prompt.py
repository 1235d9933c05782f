from __future__ import annotations


def build_prompt_instructions(
    voice_affect: str | None = None,
    tone: str | None = None,
    emotion: str | None = None,
    pacing: str | None = None,
    pronunciation: str | None = None,
    pauses: str | None = None,
    personality: str | None = None,
    delivery: str | None = None,
) -> str:
    """Assemble voice directions as ``Label: value`` paragraphs, skipping empty fields."""
    fields = (
        ("Voice Affect", voice_affect),
        ("Tone", tone),
        ("Emotion", emotion),
        ("Pacing", pacing),
        ("Pronunciation", pronunciation),
        ("Pauses", pauses),
        ("Personality", personality),
        ("Delivery", delivery),
    )
    return "\n\n".join(f"{label}: {value}" for label, value in fields if value)
