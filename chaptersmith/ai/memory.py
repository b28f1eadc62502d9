"""Per-provider conversational memory for one chapter."""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class MemoryContext:
    """Conversation state accumulated across one chapter's fragments.

    Providers with native multi-turn threads carry memory in ``thread_id``
    and the transcript stays empty. Providers without native memory get an
    explicit transcript, one marked entry per fragment, which they prepend
    to the next request.
    """

    provider: str
    thread_id: Optional[str] = None
    entries: List[str] = field(default_factory=list)

    @property
    def native(self) -> bool:
        return self.thread_id is not None

    @property
    def fragment_count(self) -> int:
        return len(self.entries)

    def append(self, fragment_index: int, text: str) -> None:
        """Record one fragment's raw output."""
        if self.native:
            # Thread already holds the assistant message; keep only a count
            self.entries.append("")
            return
        self.entries.append(f"[Fragment {fragment_index}]\n{text.strip()}")

    @property
    def transcript(self) -> str:
        return "\n\n".join(e for e in self.entries if e)

    def is_empty(self) -> bool:
        return not self.transcript
