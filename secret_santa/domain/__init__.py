"""Domain layer - 外部依存なしのドメインモデルとインターフェース定義"""

from secret_santa.domain.errors import (
    GroupNotFoundError,
    NotEnoughMembersError,
    RaffleAlreadyCompletedError,
    RaffleConflictError,
    RaffleErrorKind,
    RaffleFailure,
    SecretSantaError,
    SelfAssignmentError,
)
from secret_santa.domain.models import (
    Assignment,
    AssignmentView,
    Group,
    RaffleAssignment,
    RaffleCompleted,
    RaffleResult,
    RaffleStatus,
    ValidationResult,
)
from secret_santa.domain.ports import (
    AssignmentRepository,
    GroupRepository,
    RaffleCommitter,
)
from secret_santa.domain.raffle import RaffleAssigner, perform_raffle

__all__ = [
    # Models
    "Group",
    "RaffleStatus",
    "Assignment",
    "RaffleAssignment",
    "RaffleResult",
    "ValidationResult",
    "RaffleCompleted",
    "AssignmentView",
    # Algorithm
    "RaffleAssigner",
    "perform_raffle",
    # Errors
    "SecretSantaError",
    "GroupNotFoundError",
    "RaffleAlreadyCompletedError",
    "NotEnoughMembersError",
    "SelfAssignmentError",
    "RaffleConflictError",
    "RaffleErrorKind",
    "RaffleFailure",
    # Ports
    "GroupRepository",
    "AssignmentRepository",
    "RaffleCommitter",
]
