from __future__ import annotations

from typing import Any, Dict, Sequence

try:
    from clip_validator import ScalePolicy, validate_clip
    from constants import (
        COMPOSE_MAX_TOKENS,
        COMPOSE_TEMPERATURE,
        REPAIR_MAX_TOKENS,
        REPAIR_TEMPERATURE,
    )
    from errors import ExtractionError
    from json_extract import extract_json
    from llm_client import ModelClient
    from logger_config import logger
    from models import ComposeParams
    from prompt_builder import build_repair_prompt, build_user_prompt, resolve_bars
    from prompts import REPAIR_SYSTEM_PROMPT, SYSTEM_PROMPT
    from utils import summarize_text
except ImportError:
    from .clip_validator import ScalePolicy, validate_clip
    from .constants import (
        COMPOSE_MAX_TOKENS,
        COMPOSE_TEMPERATURE,
        REPAIR_MAX_TOKENS,
        REPAIR_TEMPERATURE,
    )
    from .errors import ExtractionError
    from .json_extract import extract_json
    from .llm_client import ModelClient
    from .logger_config import logger
    from .models import ComposeParams
    from .prompt_builder import build_repair_prompt, build_user_prompt, resolve_bars
    from .prompts import REPAIR_SYSTEM_PROMPT, SYSTEM_PROMPT
    from .utils import summarize_text


def join_segments(segments: Sequence[str]) -> str:
    return "".join(segment for segment in segments or [] if isinstance(segment, str))


def extract_with_repair(raw: str, model_client: ModelClient) -> Any:
    """Parse ``raw``; on failure ask the model once to repair it and parse that.

    A second ExtractionError propagates with the repair attempt's detail.
    """
    try:
        return extract_json(raw)
    except ExtractionError as exc:
        logger.warning("LLM JSON parse failed (%s), starting repair attempt", exc.detail)

    segments = model_client(REPAIR_SYSTEM_PROMPT, build_repair_prompt(raw), REPAIR_TEMPERATURE, REPAIR_MAX_TOKENS)
    fixed = join_segments(segments)
    logger.info("Repair response received: %d chars", len(fixed))
    logger.info("Repair response preview: %s", summarize_text(fixed))
    try:
        return extract_json(fixed)
    except ExtractionError:
        logger.error("LLM JSON parse failed after repair attempt")
        raise


def compose(
    params: ComposeParams,
    model_client: ModelClient,
    policy: ScalePolicy = ScalePolicy.SNAP,
) -> Dict[str, Any]:
    user_prompt = build_user_prompt(params)
    logger.info(
        "Compose: clip_type=%s bars=%s key=%s mode=%s policy=%s",
        params.clip_type,
        params.bars,
        params.key,
        params.mode,
        policy.value,
    )
    logger.info("User prompt to LLM:\n%s", user_prompt)

    segments = model_client(SYSTEM_PROMPT, user_prompt, COMPOSE_TEMPERATURE, COMPOSE_MAX_TOKENS)
    raw = join_segments(segments)
    logger.info("LLM response received: %d chars", len(raw))
    logger.info("LLM response preview: %s", summarize_text(raw))

    candidate = extract_with_repair(raw, model_client)
    clip = validate_clip(
        candidate,
        resolve_bars(params.bars),
        policy,
        clip_type=params.clip_type,
        key=params.key,
        mode=params.mode,
    )
    logger.info(
        "Clip built: notes=%d length_bars=%s time_signature=%s snapped=%s",
        len(clip.get("notes", [])),
        clip.get("length_bars"),
        clip.get("time_signature"),
        "yes" if clip.get("_snapped_info") else "no",
    )
    return clip
