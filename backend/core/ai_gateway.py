"""
Client for the OpenAI-compatible chat-completions gateway used by the AI
features (par levels, margin optimization, recipe steps).

The HTTP call is blocking (requests), so the async entry point runs it in the
threadpool.
"""
import json
import re
from typing import Any, Dict, List, Optional

import requests
from fastapi.concurrency import run_in_threadpool

from core.config import settings
from core.exceptions import AIGatewayError
from core.logger import get_logger

logger = get_logger("ai_gateway")

_FENCED_JSON = re.compile(r"```(?:json)?\s*([\s\S]*?)```")


def _post_chat(payload: Dict[str, Any]) -> Dict[str, Any]:
    if not settings.ai_gateway_api_key:
        raise AIGatewayError("AI_GATEWAY_API_KEY is not configured", status_code=500)

    try:
        resp = requests.post(
            settings.ai_gateway_url,
            json=payload,
            headers={
                "Authorization": f"Bearer {settings.ai_gateway_api_key}",
                "Content-Type": "application/json",
            },
            timeout=settings.http_timeout_seconds,
        )
    except requests.RequestException as e:
        logger.error("AI gateway request failed: %s", e)
        raise AIGatewayError("AI gateway unreachable", status_code=502) from e

    if resp.status_code == 429:
        raise AIGatewayError("Rate limit exceeded. Please try again in a moment.", status_code=429)
    if resp.status_code == 402:
        raise AIGatewayError("AI credits depleted. Please add credits to continue.", status_code=402)
    if resp.status_code >= 400:
        logger.error("AI gateway error %s: %s", resp.status_code, resp.text)
        raise AIGatewayError(f"AI gateway error: {resp.status_code}", status_code=502)

    try:
        return resp.json()
    except ValueError as e:
        raise AIGatewayError("AI gateway returned invalid JSON", status_code=502) from e


async def chat_completion(
    messages: List[Dict[str, str]],
    *,
    tools: Optional[List[Dict[str, Any]]] = None,
    tool_choice: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Send a chat request and return the first choice's message."""
    payload: Dict[str, Any] = {"model": settings.ai_model, "messages": messages}
    if tools:
        payload["tools"] = tools
    if tool_choice:
        payload["tool_choice"] = tool_choice

    data = await run_in_threadpool(_post_chat, payload)
    try:
        message = data["choices"][0]["message"]
    except (KeyError, IndexError, TypeError) as e:
        raise AIGatewayError("No content in AI response", status_code=502) from e
    return message or {}


async def complete(system_prompt: str, user_prompt: str) -> str:
    message = await chat_completion([
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": user_prompt},
    ])
    content = message.get("content")
    if not content:
        raise AIGatewayError("No content in AI response", status_code=502)
    logger.info("AI response received (%d chars)", len(content))
    return content


def parse_json_content(content: str) -> Any:
    """Parse a JSON reply, unwrapping a markdown code fence if present."""
    match = _FENCED_JSON.search(content or "")
    raw = match.group(1).strip() if match and match.group(1).strip() else (content or "").strip()
    try:
        return json.loads(raw)
    except ValueError as e:
        logger.error("Failed to parse AI response: %s", content)
        raise AIGatewayError("Failed to parse AI response", status_code=502) from e


def tool_call_arguments(message: Dict[str, Any], function_name: str) -> Dict[str, Any]:
    """Decode the arguments of the forced tool call named `function_name`."""
    calls = message.get("tool_calls") or []
    call = calls[0] if calls else None
    if not call or call.get("function", {}).get("name") != function_name:
        raise AIGatewayError("Unexpected AI response format", status_code=502)
    args = call["function"].get("arguments") or "{}"
    if isinstance(args, dict):
        return args
    return parse_json_content(args)
