from __future__ import annotations

import logging
from typing import Callable, Optional

from langchain_core.messages import HumanMessage, SystemMessage

from llm import fallback
from llm.client import get_llm
from llm.prompts import (
    ANALYST_SYSTEM,
    detailed_insights_prompt,
    executive_summary_prompt,
    initial_insights_prompt,
)
from llm.retry import Failed, QuotaExceeded, RetryPolicy, Success, with_retry
from schemas.results import AnalysisResult, ColumnSummary, Narrative
from schemas.table import Table
from tools.config import Settings, get_settings

log = logging.getLogger(__name__)


def _narrate(
    prompt: str,
    context: str,
    fallback_fn: Callable[[], str],
    *,
    llm=None,
    model: Optional[str] = None,
    max_tokens: int = 600,
    settings: Optional[Settings] = None,
    logger: Optional[logging.Logger] = None,
    sleep=None,
) -> Narrative:
    logger = logger or log
    settings = settings or get_settings()
    llm = llm or get_llm(settings, model=model, max_tokens=max_tokens)
    if llm is None:
        logger.warning("Invalid or missing OpenAI API key, using fallback: %s", context)
        return Narrative(text=fallback_fn(), source="fallback")

    def call() -> str:
        resp = llm.invoke([SystemMessage(content=ANALYST_SYSTEM), HumanMessage(content=prompt)])
        return str(resp.content)

    kwargs = {"sleep": sleep} if sleep is not None else {}
    outcome = with_retry(call, RetryPolicy.from_settings(settings.openai), context, logger=logger, **kwargs)

    if isinstance(outcome, Success):
        logger.info("LLM call successful: %s", context, extra={"context": {"responseLength": len(outcome.value)}})
        return Narrative(text=outcome.value, source="llm")
    if isinstance(outcome, QuotaExceeded):
        logger.info("OpenAI quota exceeded, using fallback for: %s", context)
    elif isinstance(outcome, Failed) and not outcome.retryable:
        logger.warning("Non-retryable API error, using fallback for: %s", context)
    else:
        logger.error("LLM call failed, using fallback for: %s", context,
                     extra={"context": {"errorMessage": outcome.message}})
    return Narrative(text=fallback_fn(), source="fallback")


def generate_initial_insights(table: Table, summary: ColumnSummary, **kwargs) -> Narrative:
    sample = table.records(limit=5)
    return _narrate(
        initial_insights_prompt(summary, sample),
        "generate_initial_insights",
        lambda: fallback.initial_insights(table, summary),
        max_tokens=600,
        **kwargs,
    )


def generate_detailed_insights(result: AnalysisResult, **kwargs) -> Narrative:
    settings = kwargs.get("settings") or get_settings()
    kwargs["settings"] = settings
    return _narrate(
        detailed_insights_prompt(result),
        "generate_detailed_insights",
        lambda: fallback.detailed_insights(result),
        model=settings.openai.detail_model,
        max_tokens=1000,
        **kwargs,
    )


def generate_executive_summary(result: AnalysisResult, **kwargs) -> Narrative:
    settings = kwargs.get("settings") or get_settings()
    kwargs["settings"] = settings
    return _narrate(
        executive_summary_prompt(result),
        "generate_executive_summary",
        lambda: fallback.executive_summary(result),
        model=settings.openai.detail_model,
        max_tokens=800,
        **kwargs,
    )
