"""RaffleCompletionWorkflow のテスト"""

import dataclasses
from collections import Counter
from unittest.mock import MagicMock, call

import pytest
from secret_santa.domain.errors import (
    GroupNotFoundError,
    RaffleConflictError,
    RaffleErrorKind,
    RaffleFailure,
)
from secret_santa.domain.models import (
    AssignmentView,
    RaffleCompleted,
    RaffleResult,
    RaffleStatus,
)
from secret_santa.domain.raffle import RaffleAssigner
from secret_santa.services.raffle_workflow import (
    BatchThenUpdateCommitter,
    RaffleCompletionWorkflow,
)

from tests.conftest import ADMIN_UID, FIXED_NOW, GROUP_ID, MEMBER_UIDS


@pytest.fixture
def workflow(group_repo, assignment_repo) -> RaffleCompletionWorkflow:
    """インメモリ実装を使ったワークフロー（コミットは BatchThenUpdate）"""
    return RaffleCompletionWorkflow(
        group_repo, assignment_repo, clock=lambda: FIXED_NOW
    )


class TestPerformRaffle:
    """perform_raffle の通しテスト"""

    def test_success_persists_assignments_and_completes_group(
        self, workflow, group_repo, assignment_repo
    ):
        """正常系: 4件保存し、グループが completed になる"""
        # Act
        outcome = workflow.perform_raffle(GROUP_ID, ADMIN_UID)

        # Assert
        assert outcome == RaffleCompleted(
            group_id=GROUP_ID, raffle_date=FIXED_NOW, assignment_count=4
        )

        members = [ADMIN_UID, *MEMBER_UIDS]
        stored = assignment_repo.find_by_group_id(GROUP_ID)
        assert len(stored) == 4
        assert assignment_repo.batch_count == 1
        assert all(a.receiver_id != a.secret_santa_id for a in stored)
        assert Counter(a.receiver_id for a in stored) == Counter(members)
        assert Counter(a.secret_santa_id for a in stored) == Counter(members)
        assert all(a.created_at == FIXED_NOW for a in stored)
        assert len({a.id for a in stored}) == 4

        group = group_repo.find_by_id(GROUP_ID)
        assert group.raffle_status == RaffleStatus.COMPLETED
        assert group.raffle_date is not None

    def test_execute_is_alias(self, workflow):
        """execute は perform_raffle と同じ"""
        outcome = workflow.execute(GROUP_ID, ADMIN_UID)
        assert isinstance(outcome, RaffleCompleted)

    def test_second_call_is_rejected_without_new_assignments(
        self, workflow, assignment_repo
    ):
        """2回目は RAFFLE_ALREADY_COMPLETED で、割り当ては増えない"""
        workflow.perform_raffle(GROUP_ID, ADMIN_UID)

        outcome = workflow.perform_raffle(GROUP_ID, ADMIN_UID)

        assert isinstance(outcome, RaffleFailure)
        assert outcome.kind is RaffleErrorKind.RAFFLE_ALREADY_COMPLETED
        assert len(assignment_repo.assignments) == 4
        assert assignment_repo.batch_count == 1

    def test_group_not_found(self, workflow):
        """グループがない場合"""
        outcome = workflow.perform_raffle("missing", ADMIN_UID)
        assert outcome.kind is RaffleErrorKind.GROUP_NOT_FOUND
        assert "missing" in outcome.message

    def test_non_admin_rejected(self, workflow, assignment_repo):
        """管理者以外は実行できない"""
        outcome = workflow.perform_raffle(GROUP_ID, "member-1")
        assert outcome.kind is RaffleErrorKind.NOT_GROUP_ADMIN
        assert assignment_repo.assignments == []

    def test_admin_check_precedes_other_gates(
        self, group_repo, assignment_repo, pending_group
    ):
        """完了済み・1人のグループでも、非管理者なら NOT_GROUP_ADMIN"""
        group_repo.groups[GROUP_ID] = dataclasses.replace(
            pending_group,
            members=(ADMIN_UID,),
            raffle_status=RaffleStatus.COMPLETED,
        )
        workflow = RaffleCompletionWorkflow(group_repo, assignment_repo)

        outcome = workflow.perform_raffle(GROUP_ID, "member-1")

        assert outcome.kind is RaffleErrorKind.NOT_GROUP_ADMIN

    def test_completed_check_precedes_member_count(
        self, group_repo, assignment_repo, pending_group
    ):
        """完了済み・1人のグループでは RAFFLE_ALREADY_COMPLETED が先"""
        group_repo.groups[GROUP_ID] = dataclasses.replace(
            pending_group,
            members=(ADMIN_UID,),
            raffle_status=RaffleStatus.COMPLETED,
        )
        workflow = RaffleCompletionWorkflow(group_repo, assignment_repo)

        outcome = workflow.perform_raffle(GROUP_ID, ADMIN_UID)

        assert outcome.kind is RaffleErrorKind.RAFFLE_ALREADY_COMPLETED

    def test_not_enough_members(self, group_repo, assignment_repo, pending_group):
        """1人では抽選できない"""
        group_repo.groups[GROUP_ID] = dataclasses.replace(
            pending_group, members=(ADMIN_UID,)
        )
        workflow = RaffleCompletionWorkflow(group_repo, assignment_repo)

        outcome = workflow.perform_raffle(GROUP_ID, ADMIN_UID)

        assert outcome.kind is RaffleErrorKind.NOT_ENOUGH_MEMBERS
        assert "at least 2 members" in outcome.message
        assert group_repo.find_by_id(GROUP_ID).raffle_status == RaffleStatus.PENDING

    def test_algorithm_failure_is_reported(
        self, group_repo, assignment_repo, pending_group
    ):
        """アルゴリズムの失敗は RAFFLE_FAILED として理由付きで返る"""
        group_repo.groups[GROUP_ID] = dataclasses.replace(
            pending_group, members=(ADMIN_UID, "member-1", "member-1")
        )
        workflow = RaffleCompletionWorkflow(group_repo, assignment_repo)

        outcome = workflow.perform_raffle(GROUP_ID, ADMIN_UID)

        assert outcome.kind is RaffleErrorKind.RAFFLE_FAILED
        assert outcome.message == "Duplicate member IDs detected"
        assert assignment_repo.assignments == []

    def test_uses_injected_assigner(self, group_repo, assignment_repo):
        """注入した assigner（固定乱数）が使われる"""
        assigner = MagicMock(spec=RaffleAssigner)
        assigner.assign.return_value = RaffleResult(
            success=False, error="Self-assignment detected for user x"
        )
        workflow = RaffleCompletionWorkflow(
            group_repo, assignment_repo, assigner=assigner
        )

        outcome = workflow.perform_raffle(GROUP_ID, ADMIN_UID)

        assigner.assign.assert_called_once_with((ADMIN_UID, *MEMBER_UIDS))
        assert outcome.message == "Self-assignment detected for user x"


class TestPerformRaffleCommit:
    """コミット方式とその失敗のテスト"""

    def test_committer_receives_completed_group_and_all_assignments(
        self, mock_group_repo, mock_assignment_repo, mock_committer
    ):
        """コミッターには completed 化したグループと全割り当てが渡る"""
        workflow = RaffleCompletionWorkflow(
            mock_group_repo,
            mock_assignment_repo,
            committer=mock_committer,
            clock=lambda: FIXED_NOW,
        )

        outcome = workflow.perform_raffle(GROUP_ID, ADMIN_UID)

        assert isinstance(outcome, RaffleCompleted)
        mock_committer.commit.assert_called_once()
        group, assignments = mock_committer.commit.call_args.args
        assert group.raffle_status == RaffleStatus.COMPLETED
        assert group.raffle_date == FIXED_NOW
        assert len(assignments) == 4
        assert [a.id for a in assignments] == [f"assignment-{i}" for i in range(1, 5)]
        # コミッターを渡した場合、リポジトリへ直接は書き込まない
        mock_assignment_repo.create_batch.assert_not_called()
        mock_group_repo.update.assert_not_called()

    def test_concurrent_commit_loser_gets_already_completed(
        self, mock_group_repo, mock_assignment_repo, mock_committer
    ):
        """コミット時の競合は RAFFLE_ALREADY_COMPLETED"""
        mock_committer.commit.side_effect = RaffleConflictError(GROUP_ID)
        workflow = RaffleCompletionWorkflow(
            mock_group_repo, mock_assignment_repo, committer=mock_committer
        )

        outcome = workflow.perform_raffle(GROUP_ID, ADMIN_UID)

        assert outcome.kind is RaffleErrorKind.RAFFLE_ALREADY_COMPLETED

    def test_group_deleted_before_commit(
        self, mock_group_repo, mock_assignment_repo, mock_committer
    ):
        """コミット前にグループが消えていたら GROUP_NOT_FOUND"""
        mock_committer.commit.side_effect = GroupNotFoundError(GROUP_ID)
        workflow = RaffleCompletionWorkflow(
            mock_group_repo, mock_assignment_repo, committer=mock_committer
        )

        outcome = workflow.perform_raffle(GROUP_ID, ADMIN_UID)

        assert outcome.kind is RaffleErrorKind.GROUP_NOT_FOUND

    def test_unexpected_store_error_propagates(
        self, mock_group_repo, mock_assignment_repo, mock_committer
    ):
        """想定外の例外は握りつぶさない"""
        mock_committer.commit.side_effect = RuntimeError("Firestore unavailable")
        workflow = RaffleCompletionWorkflow(
            mock_group_repo, mock_assignment_repo, committer=mock_committer
        )

        with pytest.raises(RuntimeError):
            workflow.perform_raffle(GROUP_ID, ADMIN_UID)

    def test_batch_then_update_order(self, pending_group):
        """BatchThenUpdateCommitter は割り当て保存 → グループ更新の順"""
        parent = MagicMock()
        committer = BatchThenUpdateCommitter(parent.groups, parent.assignments)
        group = pending_group.complete_raffle(FIXED_NOW)

        committer.commit(group, ["a1", "a2"])  # type: ignore[list-item]

        assert parent.mock_calls == [
            call.assignments.create_batch(["a1", "a2"]),
            call.groups.update(group),
        ]


class TestGetMyAssignment:
    """get_my_assignment のテスト"""

    def test_pending_raffle_is_not_completed(self, workflow):
        """抽選前は RAFFLE_NOT_COMPLETED"""
        outcome = workflow.get_my_assignment(GROUP_ID, "member-1")
        assert outcome.kind is RaffleErrorKind.RAFFLE_NOT_COMPLETED

    def test_returns_receiver_after_raffle(self, workflow, assignment_repo):
        """抽選後は自分が贈る相手を返す"""
        workflow.perform_raffle(GROUP_ID, ADMIN_UID)
        expected = assignment_repo.find_by_group_and_secret_santa(GROUP_ID, "member-2")

        outcome = workflow.get_my_assignment(GROUP_ID, "member-2")

        assert outcome == AssignmentView(
            id=expected.id,
            group_id=GROUP_ID,
            receiver_id=expected.receiver_id,
            created_at=FIXED_NOW,
        )
        assert outcome.receiver_id != "member-2"

    def test_every_member_sees_a_distinct_receiver(self, workflow):
        """全員が異なる相手を受け取る"""
        workflow.perform_raffle(GROUP_ID, ADMIN_UID)
        receivers = [
            workflow.get_my_assignment(GROUP_ID, uid).receiver_id
            for uid in (ADMIN_UID, *MEMBER_UIDS)
        ]
        assert sorted(receivers) == sorted([ADMIN_UID, *MEMBER_UIDS])

    def test_group_not_found(self, workflow):
        """グループがない場合"""
        outcome = workflow.get_my_assignment("missing", "member-1")
        assert outcome.kind is RaffleErrorKind.GROUP_NOT_FOUND

    def test_non_member_rejected(self, workflow):
        """メンバー以外は参照できない"""
        workflow.perform_raffle(GROUP_ID, ADMIN_UID)
        outcome = workflow.get_my_assignment(GROUP_ID, "stranger")
        assert outcome.kind is RaffleErrorKind.NOT_GROUP_MEMBER

    def test_missing_record_after_completion(
        self, group_repo, assignment_repo, completed_group
    ):
        """完了済みなのにレコードがない場合は ASSIGNMENT_NOT_FOUND"""
        group_repo.groups[GROUP_ID] = completed_group
        workflow = RaffleCompletionWorkflow(group_repo, assignment_repo)

        outcome = workflow.get_my_assignment(GROUP_ID, "member-1")

        assert outcome.kind is RaffleErrorKind.ASSIGNMENT_NOT_FOUND
        assert "contact the group admin" in outcome.message
