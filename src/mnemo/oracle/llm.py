"""LLM-backed semantic oracle."""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from mnemo.core.errors import ErrorCode, MnemoError, OracleError
from mnemo.core.models import CATEGORIES, Observation, Transcript, utcnow
from mnemo.oracle.base import SemanticOracle
from mnemo.oracle.llm_client import LLMClient

logger = logging.getLogger(__name__)

MIN_CONFIDENCE = 0.6
DEFAULT_CONFIDENCE = 0.6
MAX_TRANSCRIPT_CHARS = 40_000

_JSON_ARRAY_RE = re.compile(r"\[[\s\S]*\]")

EXTRACTION_PROMPT = """\
Below is ONE coding assistant conversation. Extract observations about the \
user's preferences, patterns, and habits.

Categories:
- preference: Language/tool choices (e.g., "prefers TypeScript")
- pattern: Repeated behaviors (e.g., "runs git status first")
- workflow: How they work (e.g., "tests before committing")
- tool-choice: Tools used (e.g., "uses uv instead of pip")
- style: Coding style (e.g., "prefers functional programming")

RESPOND WITH ONLY A JSON ARRAY. NO OTHER TEXT.
Example: [{{"text": "uses TypeScript", "category": "preference", "confidence": 0.8}}]
Return [] if nothing notable found.

<conversation>
{conversation}
</conversation>"""

SIMILARITY_PROMPT = """\
You are comparing two observations about coding patterns and preferences.

Observation A: {a_text}
Category: {a_category}

Observation B: {b_text}
Category: {b_category}

Are these observations describing the same or very similar patterns?
Respond with ONLY "YES" or "NO"."""


def render_transcript(transcript: Transcript, limit: int = MAX_TRANSCRIPT_CHARS) -> str:
    """Plain-text rendering of a transcript, keeping the most recent ``limit`` chars."""
    if transcript.messages:
        parts = []
        for message in transcript.messages:
            line = f"{message.role}: {message.content}".rstrip()
            tools = ", ".join(use.name for use in message.tool_uses)
            if tools:
                line += f" [tools: {tools}]"
            parts.append(line)
        text = "\n\n".join(parts)
    else:
        text = transcript.content
    return text[-limit:]


def parse_extraction(reply: str, transcript: Transcript) -> list[Observation]:
    """Turn a JSON-array reply into drafts. Unparseable replies yield nothing."""
    match = _JSON_ARRAY_RE.search(reply)
    try:
        data = json.loads(match.group(0) if match else reply)
    except ValueError:
        logger.debug("Unparseable extraction reply: %.200s", reply)
        return []
    if not isinstance(data, list):
        return []

    drafts = []
    for item in data:
        draft = _draft_from_item(item, transcript)
        if draft is not None:
            drafts.append(draft)
    return drafts


def _draft_from_item(item: Any, transcript: Transcript) -> Observation | None:
    if not isinstance(item, dict):
        return None
    text = item.get("text")
    if not isinstance(text, str) or not text.strip():
        return None
    confidence = item.get("confidence")
    if not isinstance(confidence, (int, float)) or isinstance(confidence, bool):
        confidence = DEFAULT_CONFIDENCE
    if confidence < MIN_CONFIDENCE:
        return None
    category = item.get("category")
    if category not in CATEGORIES:
        category = "other"

    now = utcnow()
    return Observation(
        text=text.strip(),
        category=category,
        source_session_ids=[transcript.id],
        first_seen=now,
        last_seen=now,
        metadata={"confidence": confidence, "extracted_by": "llm"},
    )


def parse_similarity(reply: str) -> bool:
    return reply.strip().upper().startswith("YES")


class LLMOracle(SemanticOracle):
    """Oracle that asks an LLM to extract patterns and compare observations."""

    name = "llm"

    def __init__(self, client: LLMClient):
        self.client = client

    def is_available(self) -> bool:
        return True

    def extract_patterns(self, transcript: Transcript) -> list[Observation]:
        prompt = EXTRACTION_PROMPT.format(conversation=render_transcript(transcript))
        try:
            reply = self.client.complete(prompt, purpose=f"extraction for {transcript.id}")
        except OracleError:
            raise
        except MnemoError as exc:
            raise OracleError(str(exc), ErrorCode.LLM_CALL_FAILED, {"session_id": transcript.id}) from exc
        return parse_extraction(reply.content, transcript)

    def check_similarity(self, a: Observation, b: Observation) -> bool:
        prompt = SIMILARITY_PROMPT.format(
            a_text=a.text,
            a_category=a.category,
            b_text=b.text,
            b_category=b.category,
        )
        try:
            reply = self.client.complete(prompt, max_tokens=8, purpose="similarity check")
        except MnemoError as exc:
            logger.debug("Similarity check failed, treating as distinct: %s", exc)
            return False
        return parse_similarity(reply.content)
