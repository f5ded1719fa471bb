"""Services layer - ビジネスロジック"""

from secret_santa.services.raffle_workflow import (
    BatchThenUpdateCommitter,
    RaffleCompletionWorkflow,
)

__all__ = [
    "RaffleCompletionWorkflow",
    "BatchThenUpdateCommitter",
]
