"""Result models for storage operations."""

from dataclasses import dataclass
from typing import List, Optional


@dataclass
class StorageResult:
    """Result of storing candles for one coin."""

    table: str
    success: bool
    candles_received: int
    records_stored: int
    execution_time_ms: int
    errors: Optional[List[str]] = None

    def __post_init__(self):
        """Initialize errors list if None."""
        if self.errors is None:
            self.errors = []
