"""The fixed Thoughtful AI question/answer corpus.

Entries are declared once, in order, and never added, removed or reordered
at runtime.  The only mutable part of an entry is its embedding, which goes
from absent to present exactly once (see :class:`EmbeddingStore`).
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class CorpusEntry:
    """One predefined question with its canned answer."""

    question: str
    answer: str
    embedding: tuple[float, ...] | None = field(default=None, compare=False, repr=False)

    def __setattr__(self, name, value):
        # question/answer are write-once (set by __init__ only)
        if name in ("question", "answer") and name in self.__dict__:
            raise AttributeError(f"CorpusEntry.{name} is immutable")
        super().__setattr__(name, value)

    @property
    def has_embedding(self) -> bool:
        return self.embedding is not None

    def attach_embedding(self, vector) -> None:
        """Store the embedding for this entry.  Only allowed once."""
        if self.embedding is not None:
            raise RuntimeError(f"Embedding already attached for {self.question!r}")
        self.embedding = tuple(float(x) for x in vector)


def _default_corpus() -> tuple[CorpusEntry, ...]:
    return (
        CorpusEntry(
            question="What does the eligibility verification agent (EVA) do?",
            answer=(
                "EVA automates the process of verifying a patient's eligibility and "
                "benefits information in real-time, eliminating manual data entry "
                "errors and reducing claim rejections."
            ),
        ),
        CorpusEntry(
            question="What does the claims processing agent (CAM) do?",
            answer=(
                "CAM streamlines the submission and management of claims, improving "
                "accuracy, reducing manual intervention, and accelerating reimbursements."
            ),
        ),
        CorpusEntry(
            question="How does the payment posting agent (PHIL) work?",
            answer=(
                "PHIL automates the posting of payments to patient accounts, ensuring "
                "fast, accurate reconciliation of payments and reducing administrative "
                "burden."
            ),
        ),
        CorpusEntry(
            question="Tell me about Thoughtful AI's Agents.",
            answer=(
                "Thoughtful AI provides a suite of AI-powered automation agents designed "
                "to streamline healthcare processes. These include Eligibility "
                "Verification (EVA), Claims Processing (CAM), and Payment Posting "
                "(PHIL), among others."
            ),
        ),
        CorpusEntry(
            question="What are the benefits of using Thoughtful AI's agents?",
            answer=(
                "Using Thoughtful AI's Agents can significantly reduce administrative "
                "costs, improve operational efficiency, and reduce errors in critical "
                "processes like claims management and payment posting."
            ),
        ),
    )


def build_default_corpus() -> tuple[CorpusEntry, ...]:
    """Return a fresh copy of the built-in corpus (embeddings unset)."""
    return _default_corpus()


# Question text used for prompt rendering
_QUESTIONS: tuple[str, ...] = tuple(e.question for e in _default_corpus())


def get_all_questions() -> list[str]:
    """Return the predefined questions in corpus order."""
    return list(_QUESTIONS)
