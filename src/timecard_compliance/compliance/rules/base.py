from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from ...entries.model import NormalizedEntry
from ..model import Issue


class ComplianceRule(ABC):
    """Strategy Pattern: one consistency rule over a normalized entry."""

    code: str = ""

    @abstractmethod
    def check(self, entry: NormalizedEntry) -> Optional[Issue]:
        raise NotImplementedError
