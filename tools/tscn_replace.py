#!/usr/bin/env python3
"""
tscn_replace.py - Literal string replacements applied to serialised JSON.

Rules file:
  {"replacements": [{"old": "res://art/", "new": "assets/"}, ...]}

Rules run in file order, each on the output of the previous one.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Sequence, Tuple, Union

logger = logging.getLogger(__name__)

Rule = Tuple[str, str]


def load_replacement_rules(path: Union[str, Path]) -> List[Rule]:
    """Read a rules file; problems are logged and yield no rules."""
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except OSError as e:
        logger.warning(f"Could not read replacements file {path}: {e}")
        return []
    except json.JSONDecodeError as e:
        logger.warning(f"Could not parse replacements file {path}: {e}")
        return []

    entries = data.get("replacements", []) if isinstance(data, dict) else None
    if not isinstance(entries, list):
        logger.warning(f"Replacements file {path} has no 'replacements' list")
        return []

    rules: List[Rule] = []
    for i, entry in enumerate(entries):
        old = entry.get("old") if isinstance(entry, dict) else None
        new = entry.get("new", "") if isinstance(entry, dict) else None
        if not isinstance(old, str) or not isinstance(new, str):
            logger.warning(f"Skipping replacement #{i} in {path}: 'old' and 'new' must be strings")
            continue
        rules.append((old, new))
    logger.debug(f"Loaded {len(rules)} replacement rule(s) from {path}")
    return rules


def apply_replacements(text: str, rules: Sequence[Rule]) -> str:
    for old, new in rules:
        if old:
            text = text.replace(old, new)
    return text
