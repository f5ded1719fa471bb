#!/usr/bin/env python3
"""CLI Entrypoint - コマンドラインから抽選を操作する

使い方:
    # 抽選を実行（requester はグループ管理者の UID）
    python -m secret_santa.entrypoints.cli raffle <group_id> --requester <uid>

    # 自分の割り当てを確認
    python -m secret_santa.entrypoints.cli my-assignment <group_id> --user <uid>

    # Firestore Emulator で検証する場合
    FIRESTORE_EMULATOR_HOST=localhost:8080 python -m secret_santa.entrypoints.cli ...

環境変数:
    PROJECT_ID: GCP プロジェクトID（必須）
    LOG_LEVEL: ログレベル (DEBUG, INFO, WARNING, ERROR) デフォルト: INFO

終了コード:
    0: 成功 / 1: 失敗（RaffleFailure または予期しないエラー）/ 130: 中断
"""

from __future__ import annotations

import argparse
import logging
import sys

from secret_santa.config import AppConfig
from secret_santa.domain.errors import RaffleFailure
from secret_santa.entrypoints.factory import (
    create_firestore_client,
    create_raffle_workflow,
)
from secret_santa.logging_config import setup_logging

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="secret-santa", description="Secret Santa 抽選の管理コマンド"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    raffle = sub.add_parser("raffle", help="グループの抽選を実行する")
    raffle.add_argument("group_id")
    raffle.add_argument("--requester", required=True, help="管理者の UID")

    mine = sub.add_parser("my-assignment", help="贈る相手を表示する")
    mine.add_argument("group_id")
    mine.add_argument("--user", required=True, help="メンバーの UID")

    return parser


def main(argv: list[str] | None = None) -> int:
    """メインエントリーポイント。終了コードを返す"""
    args = _build_parser().parse_args(argv)
    setup_logging()

    try:
        config = AppConfig.from_env()
        workflow = create_raffle_workflow(create_firestore_client(config), config)

        if args.command == "raffle":
            outcome = workflow.perform_raffle(args.group_id, args.requester)
        else:
            outcome = workflow.get_my_assignment(args.group_id, args.user)

        if isinstance(outcome, RaffleFailure):
            logger.error("%s: %s", outcome.code, outcome.message)
            return 1

        if args.command == "raffle":
            logger.info(
                "Raffle completed: group_id=%s, assignments=%d, raffle_date=%s",
                outcome.group_id,
                outcome.assignment_count,
                outcome.raffle_date.isoformat(),
            )
        else:
            logger.info(
                "You give a gift to: %s (group_id=%s)",
                outcome.receiver_id,
                outcome.group_id,
            )
        return 0

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130

    except Exception:
        logger.exception("Fatal error")
        return 1


if __name__ == "__main__":
    sys.exit(main())
