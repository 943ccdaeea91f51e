"""AI-assisted training content using Gemini through its OpenAI-compatible API."""

import json
import logging
from typing import Any

import asyncpg
from openai import AsyncOpenAI

from app.core.config import settings
from app.services.settings_store import get_setting_value

logger = logging.getLogger(__name__)

GEMINI_KEY_SETTING = "gemini_api_key"

SYSTEM_PROMPT = """You are an instructional designer for CAFFE (Citizens Action for Free and Fair Elections), \
the Jamaican non-partisan election observation organization. You write accurate, practical training \
material for election observers, grounded in Jamaican electoral law and procedures of the Electoral \
Commission of Jamaica. Always answer with a single valid JSON object and no markdown."""


class GeminiUnavailable(Exception):
    """No Gemini API key is configured."""


class GeminiResponseError(Exception):
    """The model returned something that is not a JSON object."""


async def resolve_api_key(conn: asyncpg.Connection) -> str:  # type: ignore[no-any-unimported]
    """Environment key first, then the ``gemini_api_key`` runtime setting."""
    api_key = settings.GEMINI_API_KEY or await get_setting_value(conn, GEMINI_KEY_SETTING)
    if not api_key:
        raise GeminiUnavailable("AI service unavailable: API key not configured.")
    return api_key


def parse_model_json(content: str | None) -> dict[str, Any]:
    """Decode a model reply, tolerating a fenced ```json block around it."""
    if not content:
        raise GeminiResponseError("Empty response from AI model")

    text = content.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        text = text.rsplit("```", 1)[0]

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise GeminiResponseError(f"Failed to parse AI response: {e}") from e

    if not isinstance(data, dict):
        raise GeminiResponseError("AI response is not a JSON object")
    return data


async def generate_json(api_key: str, prompt: str, temperature: float = 0.7) -> dict[str, Any]:
    client = AsyncOpenAI(api_key=api_key, base_url=settings.GEMINI_BASE_URL)
    response = await client.chat.completions.create(
        model=settings.GEMINI_MODEL,
        messages=[
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ],
        temperature=temperature,
        max_tokens=4096,
        response_format={"type": "json_object"},
    )
    return parse_model_json(response.choices[0].message.content)


async def get_recommendations(api_key: str, user_profile: dict[str, Any]) -> dict[str, Any]:
    prompt = f"""Recommend the next training steps for this observer.

Observer profile:
{json.dumps(user_profile, default=str, indent=2)}

Return {{"recommendations": [{{"title": str, "reason": str, "priority": "high"|"medium"|"low"}}],
"learningPath": [str], "summary": str}}."""
    return await generate_json(api_key, prompt)


async def generate_quiz(
    api_key: str, course: dict[str, Any], user_history: list[Any] | None = None
) -> dict[str, Any]:
    prompt = f"""Write a quiz for the following course.

Course:
{json.dumps(course, default=str, indent=2)}

Previous attempts by this user: {json.dumps(user_history or [], default=str)}

Return {{"title": str, "questions": [{{"questionText": str, "type": "multiple-choice"|"true-false",
"points": int, "options": [{{"text": str, "isCorrect": bool}}], "correctAnswer": bool,
"explanation": str}}]}}. Multiple-choice questions have exactly one correct option; true-false
questions use correctAnswer instead of options."""
    return await generate_json(api_key, prompt, temperature=0.5)


async def get_feedback(api_key: str, user_responses: Any) -> dict[str, Any]:
    prompt = f"""Give constructive feedback on these observer training responses.

Responses:
{json.dumps(user_responses, default=str, indent=2)}

Return {{"overallAssessment": str, "strengths": [str], "improvements": [str],
"suggestedModules": [str]}}."""
    return await generate_json(api_key, prompt)


async def generate_course(
    api_key: str,
    topic: str,
    role: str = "Observer",
    difficulty: str = "beginner",
    target_duration: int = 60,
) -> dict[str, Any]:
    prompt = f"""Design a complete training course.

Topic: {topic}
Audience role: {role}
Difficulty: {difficulty}
Target duration: {target_duration} minutes

Return {{"title": str, "description": str, "difficulty": str, "duration": int,
"learningObjectives": [str], "modules": [{{"title": str, "description": str, "duration": int,
"content": {{"blocks": [{{"type": "heading"|"paragraph"|"list", "data": {{}}}}]}}}}]}}."""
    return await generate_json(api_key, prompt)


async def edit_course(api_key: str, course: dict[str, Any], instruction: str) -> dict[str, Any]:
    prompt = f"""Revise this training course according to the instruction.

Instruction: {instruction}

Current course:
{json.dumps(course, default=str, indent=2)}

Return the full revised course as a JSON object with the same fields."""
    return await generate_json(api_key, prompt)


async def generate_question_bank(
    api_key: str,
    topic: str,
    difficulty: str = "medium",
    question_types: list[str] | None = None,
    count: int = 10,
) -> dict[str, Any]:
    prompt = f"""Create a question bank.

Topic: {topic}
Difficulty: {difficulty}
Question types: {", ".join(question_types or ["multiple_choice"])}
Number of questions: {count}

Return {{"topic": str, "questions": [{{"questionText": str, "type": str, "options": [str],
"correctAnswer": str, "explanation": str, "difficulty": str}}]}}."""
    return await generate_json(api_key, prompt, temperature=0.5)


async def generate_graphics_prompt(
    api_key: str, content: str, style: str = "educational", context: str = "electoral training"
) -> dict[str, Any]:
    prompt = f"""Write an image-generation prompt for an illustration.

Content to illustrate: {content}
Style: {style}
Context: {context}

Return {{"prompt": str, "altText": str, "styleNotes": str}}."""
    return await generate_json(api_key, prompt)


async def enhance_module(
    api_key: str, module_content: Any, enhancement_type: str = "clarity and engagement"
) -> dict[str, Any]:
    prompt = f"""Improve this training module for {enhancement_type}.
Keep every fact intact and the same structure.

Module content:
{json.dumps(module_content, default=str, indent=2)}

Return {{"enhancedContent": <same shape as the input>, "changes": [str]}}."""
    return await generate_json(api_key, prompt)
