# File: site_reader/utils.py
"""site_reader.utils: Утилиты для заголовков запросов, имён файлов и списков URL."""

from __future__ import annotations

import random
import re
from typing import Collection, List, Optional, Sequence

from site_reader.logger import logger

__all__: Sequence[str] = (
    "USER_AGENTS",
    "get_random_user_agent",
    "sanitize_filename",
    "remove_duplicates",
)

USER_AGENTS: Sequence[str] = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) "
    "Version/17.4 Safari/605.1.15",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:125.0) Gecko/20100101 Firefox/125.0",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/124.0.0.0 Safari/537.36 Edg/124.0.0.0",
)


def get_random_user_agent(fixed: Optional[str] = None) -> str:
    """Возвращает *fixed*, если задан, иначе случайный desktop User-Agent."""
    return fixed or random.choice(USER_AGENTS)


def sanitize_filename(title: str, default: str = "video") -> str:
    """Удаляет символы, отличные от букв/цифр/пробелов/дефисов, пробелы → ``_``."""
    cleaned = re.sub(r"[^\w\s-]", "", title or "").strip()
    cleaned = re.sub(r"\s+", "_", cleaned)
    return cleaned or default


def remove_duplicates(urls: Collection[str]) -> List[str]:
    """Удаляет дубликаты из списка URL, сохраняя порядок."""
    unique = list(dict.fromkeys(urls))
    removed = len(urls) - len(unique)
    if removed:
        logger.debug("Removed %d duplicate URLs", removed)
    return unique
