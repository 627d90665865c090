"""Voice catalog formatting and the built-in fallback voices."""

# Checked in order against the voice description.
TONE_KEYWORDS = [
    ("warm", ["warm", "friendly", "cheerful", "bright", "upbeat"]),
    ("calm", ["calm", "soothing", "gentle", "soft", "peaceful"]),
    ("confident", ["confident", "strong", "assertive", "powerful", "authoritative"]),
    ("playful", ["playful", "energetic", "lively", "bubbly", "animated"]),
    ("mysterious", ["mysterious", "sultry", "deep", "seductive", "alluring"]),
    ("professional", ["professional", "business", "formal"]),
    ("romantic", ["romantic", "intimate", "loving"]),
]

GENDER_TONES = {"male": "confident", "female": "warm"}

UNSUPPORTED_VOICE_PREFIXES = ("fallback-", "basic-")


def _fallback(voice_id, name, gender, accent, age, tone, description):
    return {
        "voice_id": voice_id,
        "name": name,
        "gender": gender,
        "accent": accent,
        "age": age,
        "tone": tone,
        "description": description,
        "preview_url": None,
    }


FALLBACK_VOICES = [
    _fallback("fallback-male-1", "Alex", "male", "American", "young adult", "warm",
              "Warm and friendly voice perfect for casual conversations"),
    _fallback("fallback-male-2", "David", "male", "British", "middle aged", "confident",
              "Sophisticated and confident with a distinguished British accent"),
    _fallback("fallback-male-3", "Ryan", "male", "American", "young adult", "playful",
              "Energetic and playful voice with youthful enthusiasm"),
    _fallback("fallback-female-1", "Sarah", "female", "American", "young adult", "warm",
              "Sweet and cheerful voice with a warm, caring tone"),
    _fallback("fallback-female-2", "Emma", "female", "British", "young adult", "confident",
              "Elegant and articulate with sophisticated confidence"),
    _fallback("fallback-female-3", "Luna", "female", "Neutral", "young adult", "mysterious",
              "Soft and mysterious with an alluring, captivating quality"),
    _fallback("fallback-female-4", "Aria", "female", "American", "young adult", "playful",
              "Bubbly and energetic with a playful, animated personality"),
    _fallback("fallback-female-5", "Sophia", "female", "Neutral", "young adult", "calm",
              "Gentle and soothing voice that brings peace and tranquility"),
]


def is_unsupported_voice(voice_id: str) -> bool:
    """Built-in catalog voices have no provider voice behind them."""
    return voice_id.startswith(UNSUPPORTED_VOICE_PREFIXES)


def assign_tone(voice: dict) -> str:
    """Tone tag from the voice description, else by gender, else neutral."""
    labels = voice.get("labels") or {}
    description = (labels.get("description") or "").lower()

    for tone, keywords in TONE_KEYWORDS:
        if any(keyword in description for keyword in keywords):
            return tone

    gender = (labels.get("gender") or "").lower()
    return GENDER_TONES.get(gender, "neutral")


def format_voices(raw_voices: list[dict]) -> list[dict]:
    """Keep premade voices and flatten their labels."""
    voices = []
    for voice in raw_voices:
        if voice.get("category") != "premade":
            continue
        labels = voice.get("labels") or {}
        voices.append({
            "voice_id": voice.get("voice_id"),
            "name": voice.get("name"),
            "gender": labels.get("gender") or "neutral",
            "accent": labels.get("accent") or "neutral",
            "age": labels.get("age") or "adult",
            "tone": assign_tone(voice),
            "description": labels.get("description") or "",
            "preview_url": voice.get("preview_url"),
        })
    return voices
