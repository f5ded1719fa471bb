"""ドメインモデル - 外部依存なしのデータ構造"""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import ClassVar

from secret_santa.domain.errors import (
    NotEnoughMembersError,
    RaffleAlreadyCompletedError,
    SelfAssignmentError,
)


class RaffleStatus(Enum):
    """グループの抽選状態"""

    PENDING = "pending"
    COMPLETED = "completed"


@dataclass(frozen=True)
class Group:
    """Secret Santa グループ（Firestore に永続化、抽選コアからは読み取り専用で扱う）"""

    MIN_MEMBERS_FOR_RAFFLE: ClassVar[int] = 2

    id: str
    name: str
    admin_id: str
    members: tuple[str, ...]  # 登録順。admin は先頭
    budget_limit: float = 0.0
    raffle_status: RaffleStatus = RaffleStatus.PENDING
    raffle_date: datetime.datetime | None = None
    description: str | None = None
    created_at: datetime.datetime | None = None
    updated_at: datetime.datetime | None = None

    def is_member(self, user_id: str) -> bool:
        return user_id in self.members

    def is_admin(self, user_id: str) -> bool:
        return self.admin_id == user_id

    @property
    def is_raffle_completed(self) -> bool:
        return self.raffle_status == RaffleStatus.COMPLETED

    def can_perform_raffle(self) -> bool:
        return (
            self.raffle_status == RaffleStatus.PENDING
            and len(self.members) >= self.MIN_MEMBERS_FOR_RAFFLE
        )

    def complete_raffle(self, now: datetime.datetime) -> Group:
        """
        抽選完了状態の新しい Group を返す。

        Raises:
            RaffleAlreadyCompletedError: 既に抽選済みの場合
            NotEnoughMembersError: メンバーが2人未満の場合
        """
        if self.is_raffle_completed:
            raise RaffleAlreadyCompletedError()
        if len(self.members) < self.MIN_MEMBERS_FOR_RAFFLE:
            raise NotEnoughMembersError(self.MIN_MEMBERS_FOR_RAFFLE)
        return replace(
            self,
            raffle_status=RaffleStatus.COMPLETED,
            raffle_date=now,
            updated_at=now,
        )


@dataclass(frozen=True)
class RaffleAssignment:
    """抽選アルゴリズムが出力する1組（ID・作成日時なし）"""

    receiver_id: str  # プレゼントを受け取る人
    secret_santa_id: str  # プレゼントを贈る人


@dataclass(frozen=True)
class Assignment:
    """
    永続化された割り当て。

    直接コンストラクタを呼ぶ経路（Firestore からの復元）では自己割り当てを検査しない。
    過去データや破損データも表現できる必要があるため。新規作成は create() を使う。
    """

    id: str
    group_id: str
    receiver_id: str
    secret_santa_id: str
    created_at: datetime.datetime

    @classmethod
    def create(
        cls,
        id: str,
        group_id: str,
        receiver_id: str,
        secret_santa_id: str,
        now: datetime.datetime,
    ) -> Assignment:
        """
        新規の割り当てを作成する。

        Raises:
            SelfAssignmentError: receiver_id == secret_santa_id の場合
        """
        if receiver_id == secret_santa_id:
            raise SelfAssignmentError(receiver_id)
        return cls(
            id=id,
            group_id=group_id,
            receiver_id=receiver_id,
            secret_santa_id=secret_santa_id,
            created_at=now,
        )

    def involves_user(self, user_id: str) -> bool:
        return self.receiver_id == user_id or self.secret_santa_id == user_id

    def is_secret_santa(self, user_id: str) -> bool:
        return self.secret_santa_id == user_id

    def is_receiver(self, user_id: str) -> bool:
        return self.receiver_id == user_id


@dataclass(frozen=True)
class RaffleResult:
    """抽選アルゴリズムの結果（永続化しない）"""

    success: bool
    assignments: list[RaffleAssignment] = field(default_factory=list)
    error: str | None = None


@dataclass(frozen=True)
class ValidationResult:
    """割り当て検証の結果"""

    valid: bool
    error: str | None = None


@dataclass(frozen=True)
class RaffleCompleted:
    """perform_raffle の成功結果"""

    group_id: str
    raffle_date: datetime.datetime
    assignment_count: int


@dataclass(frozen=True)
class AssignmentView:
    """get_my_assignment の成功結果（secret_santa_id は本人なので返さない）"""

    id: str
    group_id: str
    receiver_id: str
    created_at: datetime.datetime
