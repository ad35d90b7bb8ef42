from enum import Enum

from pydantic import BaseModel


class DeletionOutcome(str, Enum):
    DELETED = "DELETED"
    ALREADY_DELETED = "ALREADY_DELETED"


class DeletionResult(BaseModel):
    user_id: str
    outcome: DeletionOutcome

    @property
    def already_deleted(self) -> bool:
        return self.outcome is DeletionOutcome.ALREADY_DELETED
