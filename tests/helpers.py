"""Response and story builders shared by the test modules."""

import json


def story_dict(turns: int = 10, title: str = "En el restaurante") -> dict:
    return {
        "title": title,
        "messages": [
            {"text": f"Frase número {i}.", "sender": "Ana" if i % 2 == 0 else "Luis"}
            for i in range(turns)
        ],
        "questions": [
            {
                "question": f"Question {i}?",
                "options": ["uno", "dos", "tres", "cuatro"],
                "correctAnswer": i,
            }
            for i in range(3)
        ],
    }


def tool_call_body(story: dict) -> dict:
    """Chat completion body whose message calls create_story with the story."""
    return {
        "id": "chatcmpl-1",
        "object": "chat.completion",
        "choices": [
            {
                "index": 0,
                "finish_reason": "tool_calls",
                "message": {
                    "role": "assistant",
                    "content": None,
                    "tool_calls": [
                        {
                            "id": "call_1",
                            "type": "function",
                            "function": {
                                "name": "create_story",
                                "arguments": json.dumps(story, ensure_ascii=False),
                            },
                        }
                    ],
                },
            }
        ],
    }


def text_body(content: str) -> dict:
    return {
        "id": "chatcmpl-2",
        "object": "chat.completion",
        "choices": [
            {
                "index": 0,
                "finish_reason": "stop",
                "message": {"role": "assistant", "content": content},
            }
        ],
    }
