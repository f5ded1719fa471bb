"""ドメイン固有の例外クラスと抽選失敗の種別

ワークフローが呼び出し元に返す失敗は例外ではなく RaffleFailure（値）で表現する。
例外はリポジトリ契約・エンティティ不変条件の違反にのみ使う。
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class SecretSantaError(Exception):
    """Secret Santa の基底例外"""

    pass


class GroupNotFoundError(SecretSantaError):
    """グループが存在しない（GroupRepository.update 等）"""

    def __init__(self, group_id: str) -> None:
        super().__init__(f"Group with ID '{group_id}' not found")
        self.group_id = group_id


class RaffleAlreadyCompletedError(SecretSantaError):
    """抽選済みグループに対する状態遷移"""

    def __init__(
        self, message: str = "Raffle has already been completed for this group"
    ) -> None:
        super().__init__(message)


class NotEnoughMembersError(SecretSantaError):
    """抽選に必要な人数が不足している"""

    def __init__(self, minimum: int = 2) -> None:
        super().__init__(
            f"Group must have at least {minimum} members to perform raffle"
        )
        self.minimum = minimum


class SelfAssignmentError(SecretSantaError):
    """自分自身がサンタになる割り当て"""

    def __init__(self, user_id: str) -> None:
        super().__init__(f"A person cannot be their own secret santa: {user_id}")
        self.user_id = user_id


class RaffleConflictError(SecretSantaError):
    """コミット時点でグループがもう pending ではなかった（並行実行の敗者側）"""

    def __init__(self, group_id: str) -> None:
        super().__init__(f"Raffle for group '{group_id}' was completed concurrently")
        self.group_id = group_id


class RaffleErrorKind(Enum):
    """抽選ワークフローの失敗種別（閉じた集合）"""

    GROUP_NOT_FOUND = "GROUP_NOT_FOUND"
    NOT_GROUP_ADMIN = "NOT_GROUP_ADMIN"
    NOT_GROUP_MEMBER = "NOT_GROUP_MEMBER"
    RAFFLE_ALREADY_COMPLETED = "RAFFLE_ALREADY_COMPLETED"
    NOT_ENOUGH_MEMBERS = "NOT_ENOUGH_MEMBERS"
    RAFFLE_FAILED = "RAFFLE_FAILED"
    RAFFLE_NOT_COMPLETED = "RAFFLE_NOT_COMPLETED"
    ASSIGNMENT_NOT_FOUND = "ASSIGNMENT_NOT_FOUND"


@dataclass(frozen=True)
class RaffleFailure:
    """ワークフローの失敗結果"""

    kind: RaffleErrorKind
    message: str

    @property
    def code(self) -> str:
        return self.kind.value

    # ── ファクトリ ──────────────────────────────────────────────────────────

    @classmethod
    def group_not_found(cls, group_id: str) -> RaffleFailure:
        return cls(
            RaffleErrorKind.GROUP_NOT_FOUND, f"Group with ID '{group_id}' not found"
        )

    @classmethod
    def not_group_admin(cls) -> RaffleFailure:
        return cls(
            RaffleErrorKind.NOT_GROUP_ADMIN,
            "Only the group admin can perform the raffle",
        )

    @classmethod
    def not_group_member(cls) -> RaffleFailure:
        return cls(
            RaffleErrorKind.NOT_GROUP_MEMBER, "User is not a member of this group"
        )

    @classmethod
    def already_completed(cls) -> RaffleFailure:
        return cls(
            RaffleErrorKind.RAFFLE_ALREADY_COMPLETED,
            "Raffle has already been completed",
        )

    @classmethod
    def not_enough_members(cls, minimum: int = 2) -> RaffleFailure:
        return cls(
            RaffleErrorKind.NOT_ENOUGH_MEMBERS,
            f"Group must have at least {minimum} members to perform raffle",
        )

    @classmethod
    def raffle_failed(cls, reason: str | None) -> RaffleFailure:
        return cls(RaffleErrorKind.RAFFLE_FAILED, reason or "Raffle algorithm failed")

    @classmethod
    def not_completed(cls) -> RaffleFailure:
        return cls(
            RaffleErrorKind.RAFFLE_NOT_COMPLETED,
            "Raffle has not been completed for this group",
        )

    @classmethod
    def assignment_not_found(cls) -> RaffleFailure:
        return cls(
            RaffleErrorKind.ASSIGNMENT_NOT_FOUND,
            "Your assignment could not be found. Please contact the group admin.",
        )
