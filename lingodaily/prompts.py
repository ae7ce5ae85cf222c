"""CEFR-aligned prompt templates and the structured output schema.

4 levels: A1 and A2 (early, quiz in English), B1 and B2 (intermediate, quiz in
the target language).
"""

from lingodaily.models import ALL_LEVELS, EARLY_LEVELS, OPTION_COUNT, QUESTION_COUNT

SYSTEM_PROMPT = """\
You are a language teaching expert who writes CEFR-aligned reading practice. \
You create natural spoken dialogues for learners at a precise level, followed \
by comprehension questions."""

STORY_TOOL_NAME = "create_story"

A1_PROMPT = """\
Create a natural spoken conversation in {language} at a {level} language level \
between two people talking in person{topic}.

Write at least 10 alternating dialogue exchanges with natural back-and-forth as \
if two people are speaking face-to-face.
Use only simple, common vocabulary and short sentences (5-10 words per turn) \
appropriate for absolute beginners.
Include natural spoken elements like greetings, questions, short responses, \
and simple reactions that people use in everyday conversations.
The dialogue should sound like two people actually talking to each other, not \
writing messages.

Then create a title and three multiple-choice questions in {question_language} \
to quiz the reader's comprehension."""

A2_PROMPT = """\
Create a casual spoken conversation in {language} at a {level} language level \
between two people (friends, classmates, or casual acquaintances) talking in \
person{topic}.

Write at least 10 dialogue turns, alternating between the two people as they \
speak naturally to each other.
Use simple vocabulary with some basic connectors and complete sentences \
suitable for elementary learners.
Maintain a friendly, informal tone throughout and include natural spoken \
elements like fillers, confirmations, and reactions that people use when talking.
The conversation should sound like real people speaking to each other \
face-to-face, not written communication.

Then create a title and three multiple-choice questions in {question_language} \
to quiz the reader's comprehension."""

B1_PROMPT = """\
Create a natural spoken conversation in {language} at a {level} language level \
between two or more people talking in person{topic}.

Write at least 10-15 dialogue exchanges that explore the topic with some depth. \
The conversation should feel like real people discussing something \
face-to-face, allowing for expression of opinions, explanations, and personal \
experiences.
Use a mix of common and moderately advanced vocabulary with varied sentence \
structures including compound and complex sentences.
Include transitional phrases, connectors, and natural spoken expressions that \
intermediate learners need to practice.
Incorporate natural conversation elements like agreements, disagreements, \
clarifications, and follow-up questions that occur in real discussions.
The language should be accessible to lower-intermediate learners while \
providing appropriate challenge.

Then create a title and three multiple-choice questions in {question_language} \
to quiz the reader's comprehension."""

B2_PROMPT = """\
Create a substantive in-person conversation or discussion in {language} at a \
{level} language level where two or more people talk{topic}.

Write at least 12-18 dialogue exchanges that explore the topic in depth, \
including nuanced viewpoints, detailed explanations, or thoughtful analysis.
Use diverse vocabulary including idiomatic expressions, phrasal verbs, and \
topic-specific terminology. Employ varied sentence structures with complex \
grammar and sophisticated linking expressions.
The conversation should sound like educated native speakers having a \
thoughtful discussion, with natural fluency, abstract reasoning, hypothetical \
situations, or persuasive elements appropriate for upper-intermediate learners.
Include realistic spoken conversation features like hedging, emphasis, polite \
interruptions, elaborations, and natural turn-taking patterns.

Then create a title and three multiple-choice questions in {question_language} \
to quiz the reader's comprehension."""

# Appended when the model answers in plain text instead of calling the tool
RESPONSE_FORMAT_PROMPT = """\

You must respond with valid JSON in exactly this format:
{{
  "title": "The conversation title in {language}",
  "messages": [
    {{ "text": "Message text in {language}", "sender": "Person 1" }},
    {{ "text": "Message text in {language}", "sender": "Person 2" }}
  ],
  "questions": [
    {{
      "question": "Question text in {question_language}",
      "options": ["Option A", "Option B", "Option C", "Option D"],
      "correctAnswer": 0
    }}
  ]
}}

The messages array should contain at least {min_messages} message objects \
with "text" and "sender" properties.
The questions array should contain exactly 3 questions.
The correctAnswer field should be the index (0-3) of the correct option.
IMPORTANT: Respond ONLY with the raw JSON object. Do NOT wrap it in markdown \
code blocks or backticks."""

LEVEL_PROMPTS = {
    "A1": A1_PROMPT,
    "A2": A2_PROMPT,
    "B1": B1_PROMPT,
    "B2": B2_PROMPT,
}

MIN_MESSAGES = {
    "A1": 10,
    "A2": 10,
    "B1": 10,
    "B2": 12,
}


def _check_level(level: str) -> str:
    level = level.upper()
    if level not in ALL_LEVELS:
        raise ValueError(f"Unsupported level: {level}")
    return level


def question_language(language: str, level: str) -> str:
    """English for the early levels, the target language otherwise."""
    return "English" if _check_level(level) in EARLY_LEVELS else language


def min_messages(level: str) -> int:
    return MIN_MESSAGES[_check_level(level)]


def build_prompt(
    language: str, level: str, theme: str, structured: bool = True
) -> str:
    """Build the user prompt for one (language, level, theme) request.

    An empty theme leaves the topic to the model. When ``structured`` is False
    the JSON response format is spelled out for free-text parsing.
    """
    level = _check_level(level)
    qlang = question_language(language, level)
    topic = f" about: {theme}" if theme else ""
    prompt = LEVEL_PROMPTS[level].format(
        language=language,
        level=level,
        topic=topic,
        question_language=qlang,
    )
    if not structured:
        prompt += RESPONSE_FORMAT_PROMPT.format(
            language=language,
            question_language=qlang,
            min_messages=min_messages(level),
        )
    return prompt


def build_output_schema(language: str, level: str) -> dict:
    """Function tool the model is forced to call with the finished story."""
    level = _check_level(level)
    qlang = question_language(language, level)
    minimum = min_messages(level)
    return {
        "type": "function",
        "function": {
            "name": STORY_TOOL_NAME,
            "description": f"Create a {level} level conversational story in {language}",
            "parameters": {
                "type": "object",
                "properties": {
                    "title": {
                        "type": "string",
                        "description": f"The conversation title in {language}",
                    },
                    "messages": {
                        "type": "array",
                        "description": (
                            f"Array of at least {minimum} message objects in the conversation"
                        ),
                        "items": {
                            "type": "object",
                            "properties": {
                                "text": {
                                    "type": "string",
                                    "description": f"The message text in {language}",
                                },
                                "sender": {
                                    "type": "string",
                                    "description": "The name of the person sending the message",
                                },
                            },
                            "required": ["text", "sender"],
                        },
                        "minItems": minimum,
                    },
                    "questions": {
                        "type": "array",
                        "description": (
                            f"Array of exactly {QUESTION_COUNT} comprehension questions in {qlang}"
                        ),
                        "items": {
                            "type": "object",
                            "properties": {
                                "question": {
                                    "type": "string",
                                    "description": f"The question text in {qlang}",
                                },
                                "options": {
                                    "type": "array",
                                    "description": f"Array of exactly {OPTION_COUNT} answer options",
                                    "items": {"type": "string"},
                                    "minItems": OPTION_COUNT,
                                    "maxItems": OPTION_COUNT,
                                },
                                "correctAnswer": {
                                    "type": "integer",
                                    "description": (
                                        "The index (0-3) of the correct answer in the options array"
                                    ),
                                    "minimum": 0,
                                    "maximum": OPTION_COUNT - 1,
                                },
                            },
                            "required": ["question", "options", "correctAnswer"],
                        },
                        "minItems": QUESTION_COUNT,
                        "maxItems": QUESTION_COUNT,
                    },
                },
                "required": ["title", "messages", "questions"],
            },
        },
    }
