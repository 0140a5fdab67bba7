# services/payments/pipeline.py
"""
Ordered, short-circuiting callback validation.

A stage takes the current state and the host and returns either the
(possibly enriched) state or a Rejection. The first Rejection ends the run.
"""

from __future__ import annotations
import logging
from typing import Callable, Iterable

from services.payments.base import CallbackHost, CallbackState, LogType, Rejection, StageResult

logger = logging.getLogger(__name__)

Stage = Callable[[CallbackState, CallbackHost], StageResult]


def run_stages(state: CallbackState, host: CallbackHost, stages: Iterable[Stage]) -> CallbackState:
    if state.rejected:
        return state
    for stage in stages:
        result = stage(state, host)
        if isinstance(result, Rejection):
            level = logging.ERROR if result.log_type == LogType.ERROR else logging.INFO
            logger.log(level, "callback rejected by %s: %s (provider=%s request_key=%s)",
                       getattr(stage, "__name__", repr(stage)), result.message,
                       state.provider_id, state.request_key or "-")
            return state.reject(result)
        state = result
    return state
