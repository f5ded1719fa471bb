"""RaffleCompletionWorkflow - 抽選の実行と割り当ての参照

Ports（ABC）にのみ依存し、Firestore の実装詳細からは独立。
失敗は RaffleFailure として返す（例外は投げない）。
"""

from __future__ import annotations

import datetime
import logging
from collections.abc import Callable

from secret_santa.domain.errors import (
    GroupNotFoundError,
    RaffleConflictError,
    RaffleFailure,
)
from secret_santa.domain.models import (
    Assignment,
    AssignmentView,
    Group,
    RaffleCompleted,
)
from secret_santa.domain.ports import (
    AssignmentRepository,
    GroupRepository,
    RaffleCommitter,
)
from secret_santa.domain.raffle import RaffleAssigner

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime.datetime]


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


class BatchThenUpdateCommitter(RaffleCommitter):
    """
    割り当てのバッチ書き込み → グループ更新 の順にコミットする。

    2つの書き込みをまたぐトランザクションを持たないストア向け。
    間でプロセスが落ちると割り当てだけが残りグループは pending のままになる。
    """

    def __init__(
        self, group_repo: GroupRepository, assignment_repo: AssignmentRepository
    ) -> None:
        self._groups = group_repo
        self._assignments = assignment_repo

    def commit(self, group: Group, assignments: list[Assignment]) -> None:
        self._assignments.create_batch(assignments)
        self._groups.update(group)


class RaffleCompletionWorkflow:
    """
    グループの抽選を実行し、結果を原子的に保存する。

    処理フロー（perform_raffle）:
    1. グループ取得
    2. 管理者チェック
    3. 抽選済みチェック
    4. 人数チェック
    5. 抽選アルゴリズム実行
    6. Assignment 生成
    7. コミット（割り当て保存 + グループを completed に更新）

    リクエスト間で状態を持たないので、リクエストごとに生成してよい。
    """

    def __init__(
        self,
        group_repo: GroupRepository,
        assignment_repo: AssignmentRepository,
        committer: RaffleCommitter | None = None,
        assigner: RaffleAssigner | None = None,
        clock: Clock | None = None,
    ) -> None:
        """
        Args:
            group_repo: グループの読み書き
            assignment_repo: 割り当ての読み書き
            committer: コミット方式（None の場合は BatchThenUpdateCommitter）
            assigner: 抽選アルゴリズム（テストでは乱数を固定したものを渡す）
            clock: 現在時刻の取得関数
        """
        self._groups = group_repo
        self._assignments = assignment_repo
        self._committer = committer or BatchThenUpdateCommitter(
            group_repo, assignment_repo
        )
        self._assigner = assigner or RaffleAssigner()
        self._clock = clock or _utcnow

    def perform_raffle(
        self, group_id: str, requester_id: str
    ) -> RaffleCompleted | RaffleFailure:
        """
        グループの抽選を実行する（管理者のみ）。

        Returns:
            RaffleCompleted: group_id, raffle_date, assignment_count
            RaffleFailure: 最初に引っかかったゲートの失敗
        """
        group = self._groups.find_by_id(group_id)
        if group is None:
            logger.info("Raffle rejected: group not found: group_id=%s", group_id)
            return RaffleFailure.group_not_found(group_id)

        if not group.is_admin(requester_id):
            logger.warning(
                "Raffle rejected: not admin: group_id=%s, requester=%s",
                group_id,
                requester_id,
            )
            return RaffleFailure.not_group_admin()

        if group.is_raffle_completed:
            logger.info("Raffle rejected: already completed: group_id=%s", group_id)
            return RaffleFailure.already_completed()

        if len(group.members) < Group.MIN_MEMBERS_FOR_RAFFLE:
            logger.info(
                "Raffle rejected: not enough members: group_id=%s, members=%d",
                group_id,
                len(group.members),
            )
            return RaffleFailure.not_enough_members(Group.MIN_MEMBERS_FOR_RAFFLE)

        result = self._assigner.assign(group.members)
        if not result.success:
            logger.error(
                "Raffle algorithm failed: group_id=%s, error=%s", group_id, result.error
            )
            return RaffleFailure.raffle_failed(result.error)

        now = self._clock()
        assignments = [
            Assignment.create(
                id=self._assignments.generate_id(),
                group_id=group_id,
                receiver_id=pair.receiver_id,
                secret_santa_id=pair.secret_santa_id,
                now=now,
            )
            for pair in result.assignments
        ]
        completed = group.complete_raffle(now)

        try:
            self._committer.commit(completed, assignments)
        except RaffleConflictError:
            logger.warning(
                "Raffle lost a concurrent commit: group_id=%s, requester=%s",
                group_id,
                requester_id,
            )
            return RaffleFailure.already_completed()
        except GroupNotFoundError:
            logger.warning("Group vanished before commit: group_id=%s", group_id)
            return RaffleFailure.group_not_found(group_id)

        logger.info(
            "Raffle completed: group_id=%s, assignments=%d", group_id, len(assignments)
        )
        return RaffleCompleted(
            group_id=group_id,
            raffle_date=now,
            assignment_count=len(assignments),
        )

    execute = perform_raffle

    def get_my_assignment(
        self, group_id: str, user_id: str
    ) -> AssignmentView | RaffleFailure:
        """自分がプレゼントを贈る相手を返す"""
        group = self._groups.find_by_id(group_id)
        if group is None:
            return RaffleFailure.group_not_found(group_id)

        if not group.is_member(user_id):
            return RaffleFailure.not_group_member()

        if not group.is_raffle_completed:
            return RaffleFailure.not_completed()

        assignment = self._assignments.find_by_group_and_secret_santa(
            group_id, user_id
        )
        if assignment is None:
            # 抽選完了済みなのにレコードがない = データ不整合
            logger.error(
                "Assignment missing for completed raffle: group_id=%s, user=%s",
                group_id,
                user_id,
            )
            return RaffleFailure.assignment_not_found()

        return AssignmentView(
            id=assignment.id,
            group_id=assignment.group_id,
            receiver_id=assignment.receiver_id,
            created_at=assignment.created_at,
        )
