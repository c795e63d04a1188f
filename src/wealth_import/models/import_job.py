from enum import Enum
from typing import List
from pydantic import BaseModel, Field, ConfigDict


class ImportStatus(str, Enum):
    IDLE = "idle"
    READING = "reading"
    PARSING = "parsing"
    MATERIALIZING = "materializing"
    SAVING = "saving"
    COMPLETE = "complete"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ImportStatus.COMPLETE, ImportStatus.FAILED)


class ImportProgress(BaseModel):
    status: ImportStatus
    fraction: float = Field(ge=0.0, le=1.0)
    message: str = ""


class ImportResult(BaseModel):
    """
    Summary of one import call. Counts only include records that were
    attached to an account, never rows that were dropped.
    """
    containers_created: int = Field(default=0, alias="containersCreated")
    transactions_imported: int = Field(default=0, alias="transactionsImported")
    holdings_imported: int = Field(default=0, alias="holdingsImported")
    warnings: List[str] = Field(default_factory=list)

    model_config = ConfigDict(
        populate_by_name=True
    )

    @property
    def records_imported(self) -> int:
        return self.transactions_imported + self.holdings_imported
