# assessments/throttling.py
"""
Per (student, question) save throttle.

``cache.add`` only writes a missing key, which gives SETNX semantics on every
Django cache backend: the first save inside the interval takes the slot, the
rest are refused until the key expires.
"""
from __future__ import annotations

import logging
import math

from django.core.cache import cache

logger = logging.getLogger(__name__)

LOG_SAVE_THROTTLED = "SAVE_THROTTLED student_id=%s question_id=%s interval=%s"
LOG_SLOT_ACQUIRED = "SAVE_SLOT student_id=%s question_id=%s acquired"


def _slot_key(student_id, question_id) -> str:
    return f"exam:save:{student_id}:{question_id}"


def acquire_save_slot(student_id, question_id, interval: float) -> bool:
    """
    Returns:
        True: save may proceed
        False: another save for the same key happened inside ``interval`` seconds
    """
    if interval <= 0:
        return True

    # cache timeouts are whole seconds
    ok = cache.add(_slot_key(student_id, question_id), "1", timeout=max(1, math.ceil(interval)))
    if ok:
        logger.debug(LOG_SLOT_ACQUIRED, student_id, question_id)
        return True
    logger.info(LOG_SAVE_THROTTLED, student_id, question_id, interval)
    return False
