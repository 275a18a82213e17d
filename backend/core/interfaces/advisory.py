# core/interfaces/advisory.py
from abc import ABC, abstractmethod


class AdvisoryGenerator(ABC):
    """Turns a short metrics summary into a maintenance narrative.

    Best-effort collaborator: callers must tolerate any exception, including
    timeouts, and carry on without the text.
    """

    @abstractmethod
    def generate_advisory(self, summary_text: str) -> str:
        ...


class AdvisoryError(Exception):
    """The advisory generator returned no usable text."""
