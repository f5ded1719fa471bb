"""Factory - 依存性注入の組み立て

Firestore アダプタを組み立て、RaffleCompletionWorkflow を生成する。
API（deps.py）と CLI の両方から使う。
"""

from __future__ import annotations

import logging

from google.cloud import firestore

from secret_santa.adapters.firestore_repository import (
    FirestoreAssignmentRepository,
    FirestoreGroupRepository,
    FirestoreRaffleCommitter,
)
from secret_santa.config import AppConfig
from secret_santa.domain.raffle import RaffleAssigner
from secret_santa.services.raffle_workflow import RaffleCompletionWorkflow

logger = logging.getLogger(__name__)


def create_firestore_client(config: AppConfig) -> firestore.Client:
    """Firestore クライアントを生成（FIRESTORE_EMULATOR_HOST があればエミュレーターに接続）"""
    client = firestore.Client(project=config.project_id)
    logger.info("Firestore client initialized: project_id=%s", config.project_id)
    return client


def create_raffle_workflow(
    db: firestore.Client,
    config: AppConfig,
    assigner: RaffleAssigner | None = None,
) -> RaffleCompletionWorkflow:
    """
    RaffleCompletionWorkflow を生成（全依存を組み立て）。

    コミットはトランザクション版（FirestoreRaffleCommitter）を使う。

    Args:
        db: 初期化済みの Firestore クライアント
        config: アプリケーション設定（コレクション名）
        assigner: 抽選アルゴリズム（None の場合はデフォルト乱数）
    """
    group_repo = FirestoreGroupRepository(db, config.groups_collection)
    assignment_repo = FirestoreAssignmentRepository(db, config.assignments_collection)
    committer = FirestoreRaffleCommitter(
        db,
        groups_collection=config.groups_collection,
        assignments_collection=config.assignments_collection,
    )
    return RaffleCompletionWorkflow(
        group_repo=group_repo,
        assignment_repo=assignment_repo,
        committer=committer,
        assigner=assigner,
    )
