"""
Per-call parsing context shared by the extractors.
"""
import threading
from dataclasses import dataclass, field
from typing import Callable, Optional

from wealth_import.utils.import_errors import ImportCanceled
from wealth_import.utils.warnings_collector import WarningsCollector

ProgressHook = Callable[[int, int], None]


@dataclass
class ParsingContext:
    """Context object for passing parsing parameters through the row loops"""
    warnings: WarningsCollector = field(default_factory=WarningsCollector)
    cancel_event: Optional[threading.Event] = None
    on_progress: Optional[ProgressHook] = None
    progress_interval: int = 100

    def check_canceled(self) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise ImportCanceled("Import canceled by caller")

    def checkpoint(self, index: int, total: int) -> None:
        """
        Called once per row. Raises ImportCanceled when the cancel event is
        set, and reports progress every `progress_interval` rows.
        """
        self.check_canceled()
        if self.on_progress is not None and self.progress_interval > 0 and index % self.progress_interval == 0:
            self.on_progress(index, total)

    def warn(self, message: str) -> None:
        self.warnings.add(message)
