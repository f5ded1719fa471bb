"""共通テストフィクスチャ

全テストから利用可能なモックオブジェクト・インメモリ実装とサンプルデータを提供。

モックの作成:
- MagicMock(spec=ABC) でABCのメソッドシグネチャを保持
- ワークフローの通しテストにはインメモリ実装（InMemory*）を使う
"""

from __future__ import annotations

import datetime
import itertools
from collections.abc import Callable
from unittest.mock import MagicMock

import pytest
from secret_santa.domain.errors import GroupNotFoundError
from secret_santa.domain.models import Assignment, Group, RaffleStatus
from secret_santa.domain.ports import (
    AssignmentRepository,
    GroupRepository,
    RaffleCommitter,
)

ADMIN_UID = "admin-uid"
MEMBER_UIDS = ("member-1", "member-2", "member-3")
GROUP_ID = "group-xmas"
FIXED_NOW = datetime.datetime(2026, 12, 1, 9, 0, tzinfo=datetime.UTC)


def sequence_random(values: list[float]) -> Callable[[], float]:
    """与えた値を順に（循環して）返す乱数関数"""
    it = itertools.cycle(values)
    return lambda: next(it)


# ========== インメモリ実装 ==========


class InMemoryGroupRepository(GroupRepository):
    def __init__(self, groups: list[Group] | None = None) -> None:
        self.groups: dict[str, Group] = {g.id: g for g in groups or []}

    def find_by_id(self, group_id: str) -> Group | None:
        return self.groups.get(group_id)

    def update(self, group: Group) -> None:
        if group.id not in self.groups:
            raise GroupNotFoundError(group.id)
        self.groups[group.id] = group


class InMemoryAssignmentRepository(AssignmentRepository):
    def __init__(self) -> None:
        self.assignments: list[Assignment] = []
        self.batch_count = 0
        self._seq = itertools.count(1)

    def generate_id(self) -> str:
        return f"assignment-{next(self._seq)}"

    def create_batch(self, assignments: list[Assignment]) -> None:
        if not assignments:
            return
        self.assignments.extend(assignments)
        self.batch_count += 1

    def find_by_group_and_secret_santa(
        self, group_id: str, secret_santa_id: str
    ) -> Assignment | None:
        for a in self.assignments:
            if a.group_id == group_id and a.secret_santa_id == secret_santa_id:
                return a
        return None

    def find_by_group_id(self, group_id: str) -> list[Assignment]:
        return [a for a in self.assignments if a.group_id == group_id]

    def delete_by_group_id(self, group_id: str) -> None:
        self.assignments = [a for a in self.assignments if a.group_id != group_id]


# ========== サンプルデータ ==========


@pytest.fixture
def pending_group() -> Group:
    """抽選前のグループ（admin + 3人）"""
    return Group(
        id=GROUP_ID,
        name="Team Xmas",
        admin_id=ADMIN_UID,
        members=(ADMIN_UID, *MEMBER_UIDS),
        budget_limit=30.0,
        raffle_status=RaffleStatus.PENDING,
        created_at=FIXED_NOW - datetime.timedelta(days=7),
        updated_at=FIXED_NOW - datetime.timedelta(days=7),
    )


@pytest.fixture
def completed_group(pending_group) -> Group:
    """抽選済みのグループ"""
    return pending_group.complete_raffle(FIXED_NOW)


@pytest.fixture
def sample_assignment() -> Assignment:
    """サンプル割り当て: admin → member-1"""
    return Assignment(
        id="assignment-1",
        group_id=GROUP_ID,
        receiver_id="member-1",
        secret_santa_id=ADMIN_UID,
        created_at=FIXED_NOW,
    )


# ========== リポジトリフィクスチャ ==========


@pytest.fixture
def group_repo(pending_group) -> InMemoryGroupRepository:
    return InMemoryGroupRepository([pending_group])


@pytest.fixture
def assignment_repo() -> InMemoryAssignmentRepository:
    return InMemoryAssignmentRepository()


@pytest.fixture
def mock_group_repo(pending_group) -> MagicMock:
    """GroupRepository のモック"""
    mock = MagicMock(spec=GroupRepository)
    mock.find_by_id.return_value = pending_group
    return mock


@pytest.fixture
def mock_assignment_repo() -> MagicMock:
    """AssignmentRepository のモック"""
    mock = MagicMock(spec=AssignmentRepository)
    mock.generate_id.side_effect = (f"assignment-{i}" for i in itertools.count(1))
    mock.find_by_group_and_secret_santa.return_value = None
    return mock


@pytest.fixture
def mock_committer() -> MagicMock:
    """RaffleCommitter のモック"""
    return MagicMock(spec=RaffleCommitter)
