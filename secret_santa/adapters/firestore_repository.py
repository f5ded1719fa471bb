"""Firestore Repository Adapter

GroupRepository / AssignmentRepository / RaffleCommitter の Firestore 実装。

Firestore コレクション構造:
  groups/{groupId}              ← グループ（members, admin_id, raffle_status 等）
  assignments/{assignmentId}    ← 割り当て（group_id で絞り込む）
"""

from __future__ import annotations

import datetime
import logging
from typing import Any

from google.cloud import firestore

from secret_santa.domain.errors import GroupNotFoundError, RaffleConflictError
from secret_santa.domain.models import Assignment, Group, RaffleStatus
from secret_santa.domain.ports import (
    AssignmentRepository,
    GroupRepository,
    RaffleCommitter,
)

logger = logging.getLogger(__name__)

_GROUPS = "groups"
_ASSIGNMENTS = "assignments"


def _by_group(
    col: firestore.CollectionReference, group_id: str
) -> firestore.Query:
    """割り当てを group_id で絞り込むクエリ（リポジトリとコミッターで共用）"""
    return col.where("group_id", "==", group_id)


class FirestoreGroupRepository(GroupRepository):
    """
    Firestore を使った GroupRepository 実装。

    groups/{groupId} を管理する。グループの作成・削除はこのアダプタの責務外。
    """

    def __init__(self, db: firestore.Client, collection: str = _GROUPS) -> None:
        """
        Args:
            db: 初期化済みの Firestore クライアント
            collection: グループのコレクション名
        """
        self._db = db
        self._collection = collection

    def find_by_id(self, group_id: str) -> Group | None:
        """グループを取得。存在しない場合は None を返す"""
        snap = self._db.collection(self._collection).document(group_id).get()
        if not snap.exists:
            return None
        return group_from_dict(snap.id, snap.to_dict() or {})

    def update(self, group: Group) -> None:
        """グループを更新。存在しない場合は GroupNotFoundError"""
        ref = self._db.collection(self._collection).document(group.id)
        if not ref.get().exists:
            raise GroupNotFoundError(group.id)
        ref.update(group_to_dict(group))
        logger.info(
            "Updated group: group_id=%s, raffle_status=%s",
            group.id,
            group.raffle_status.value,
        )


class FirestoreAssignmentRepository(AssignmentRepository):
    """
    Firestore を使った AssignmentRepository 実装。

    assignments/{assignmentId} を管理する。
    """

    def __init__(self, db: firestore.Client, collection: str = _ASSIGNMENTS) -> None:
        self._db = db
        self._collection = collection

    def generate_id(self) -> str:
        """Firestore の自動IDを払い出す（書き込みはしない）"""
        return self._db.collection(self._collection).document().id

    def create_batch(self, assignments: list[Assignment]) -> None:
        """バッチ書き込みで全件を原子的に保存"""
        if not assignments:
            return

        col = self._db.collection(self._collection)
        batch = self._db.batch()
        for assignment in assignments:
            batch.set(col.document(assignment.id), assignment_to_dict(assignment))
        batch.commit()
        logger.info(
            "Created assignments: group_id=%s, count=%d",
            assignments[0].group_id,
            len(assignments),
        )

    def find_by_group_and_secret_santa(
        self, group_id: str, secret_santa_id: str
    ) -> Assignment | None:
        snaps = (
            self._db.collection(self._collection)
            .where("group_id", "==", group_id)
            .where("secret_santa_id", "==", secret_santa_id)
            .limit(1)
            .stream()
        )
        for snap in snaps:
            return assignment_from_dict(snap.id, snap.to_dict() or {})
        return None

    def find_by_group_id(self, group_id: str) -> list[Assignment]:
        """
        グループの割り当てを作成日時順に返す。

        group_id + created_at の複合インデックスが必要:
          gcloud firestore indexes composite create --collection-group=assignments \\
            --field-config=field-path=group_id,order=ascending \\
            --field-config=field-path=created_at,order=ascending
        """
        snaps = (
            _by_group(self._db.collection(self._collection), group_id)
            .order_by("created_at")
            .stream()
        )
        return [assignment_from_dict(snap.id, snap.to_dict() or {}) for snap in snaps]

    def delete_by_group_id(self, group_id: str) -> None:
        """グループの割り当てをバッチで一括削除"""
        snaps = list(_by_group(self._db.collection(self._collection), group_id).stream())
        if not snaps:
            return

        batch = self._db.batch()
        for snap in snaps:
            batch.delete(snap.reference)
        batch.commit()
        logger.info("Deleted assignments: group_id=%s, count=%d", group_id, len(snaps))


class FirestoreRaffleCommitter(RaffleCommitter):
    """
    1つのトランザクションで抽選結果をコミットする。

    トランザクション内で:
    1. groups/{groupId} を再読込し、raffle_status が pending のままか確認（CAS）
    2. 既存の割り当て（中断されたコミットの残骸）を削除
    3. 新しい割り当てを書き込み
    4. グループを completed に更新

    競合時は Firestore がトランザクションを再試行し、再読込で completed を
    見た側が RaffleConflictError になる。
    """

    def __init__(
        self,
        db: firestore.Client,
        groups_collection: str = _GROUPS,
        assignments_collection: str = _ASSIGNMENTS,
    ) -> None:
        self._db = db
        self._groups = groups_collection
        self._assignments = assignments_collection

    def commit(self, group: Group, assignments: list[Assignment]) -> None:
        group_ref = self._db.collection(self._groups).document(group.id)
        assignments_col = self._db.collection(self._assignments)

        @firestore.transactional
        def _commit_in_transaction(transaction: firestore.Transaction) -> int:
            # 読み取りは書き込みより先に行う必要がある
            snap = group_ref.get(transaction=transaction)
            if not snap.exists:
                raise GroupNotFoundError(group.id)
            stored_status = raffle_status_from_dict(group.id, snap.to_dict() or {})
            if stored_status is not RaffleStatus.PENDING:
                raise RaffleConflictError(group.id)

            stale = list(
                _by_group(assignments_col, group.id).stream(transaction=transaction)
            )

            for old in stale:
                transaction.delete(old.reference)
            for assignment in assignments:
                transaction.set(
                    assignments_col.document(assignment.id),
                    assignment_to_dict(assignment),
                )
            transaction.update(group_ref, group_to_dict(group))
            return len(stale)

        stale_count = _commit_in_transaction(self._db.transaction())
        if stale_count:
            logger.warning(
                "Removed stale assignments: group_id=%s, count=%d",
                group.id,
                stale_count,
            )
        logger.info(
            "Committed raffle: group_id=%s, assignments=%d", group.id, len(assignments)
        )


# ── 変換ヘルパー ──────────────────────────────────────────────────────────────


def group_to_dict(group: Group) -> dict[str, Any]:
    return {
        "name": group.name,
        "description": group.description,
        "admin_id": group.admin_id,
        "members": list(group.members),
        "budget_limit": group.budget_limit,
        "raffle_status": group.raffle_status.value,
        "raffle_date": group.raffle_date,
        "updated_at": group.updated_at or firestore.SERVER_TIMESTAMP,
    }


def raffle_status_from_dict(group_id: str, data: dict) -> RaffleStatus:
    """raffle_status を読む。未設定・空は pending 扱い"""
    raw = data.get("raffle_status") or RaffleStatus.PENDING.value
    try:
        return RaffleStatus(raw)
    except ValueError:
        logger.error("Unknown raffle_status: group_id=%s, value=%r", group_id, raw)
        raise


def group_from_dict(group_id: str, data: dict) -> Group:
    return Group(
        id=group_id,
        name=data.get("name") or "",
        description=data.get("description"),
        admin_id=data.get("admin_id") or "",
        members=tuple(data.get("members") or ()),
        budget_limit=float(data.get("budget_limit") or 0),
        raffle_status=raffle_status_from_dict(group_id, data),
        raffle_date=data.get("raffle_date"),
        created_at=data.get("created_at"),
        updated_at=data.get("updated_at"),
    )


def assignment_to_dict(assignment: Assignment) -> dict[str, Any]:
    return {
        "group_id": assignment.group_id,
        "receiver_id": assignment.receiver_id,
        "secret_santa_id": assignment.secret_santa_id,
        "created_at": assignment.created_at,
    }


def assignment_from_dict(assignment_id: str, data: dict) -> Assignment:
    # 復元時は自己割り当てを検査しない（Assignment.create を通さない）
    return Assignment(
        id=assignment_id,
        group_id=data.get("group_id") or "",
        receiver_id=data.get("receiver_id") or "",
        secret_santa_id=data.get("secret_santa_id") or "",
        created_at=data.get("created_at")
        or datetime.datetime.fromtimestamp(0, datetime.UTC),
    )
