"""FastAPI 依存性注入

Firebase Auth JWT 検証と Firestore リポジトリ・ワークフローの初期化を担当する。
各ルートは Depends() でこのモジュールの関数を呼び出して認証 uid と
ワークフローインスタンスを受け取る。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import firebase_admin
import firebase_admin.auth as fb_auth
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from firebase_admin import credentials as fb_creds
from google.cloud import firestore

from secret_santa.config import AppConfig
from secret_santa.entrypoints.factory import (
    create_firestore_client,
    create_raffle_workflow,
)
from secret_santa.services.raffle_workflow import RaffleCompletionWorkflow

logger = logging.getLogger(__name__)

# ── 設定（プロセス内で1回のみ読み込み） ──────────────────────────────────────────

_config: AppConfig | None = None


def _get_config() -> AppConfig:
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


# ── Firebase Admin 初期化（プロセス内で1回のみ） ────────────────────────────────

_firebase_app: firebase_admin.App | None = None


def _get_firebase_app() -> firebase_admin.App:
    global _firebase_app
    if _firebase_app is None:
        try:
            # CLI などが先に初期化済みの場合
            _firebase_app = firebase_admin.get_app()
        except ValueError:
            project_id = _get_config().project_id
            _firebase_app = firebase_admin.initialize_app(
                fb_creds.ApplicationDefault(),
                options={"projectId": project_id},
            )
            logger.info("Firebase Admin initialized project=%s", project_id)
    return _firebase_app


# ── 認証 ────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class AuthInfo:
    """Firebase Auth JWT から取得した認証情報"""

    uid: str


_bearer = HTTPBearer()


async def get_auth_info(
    creds: HTTPAuthorizationCredentials = Depends(_bearer),
) -> AuthInfo:
    """
    Authorization: Bearer <id_token> ヘッダーを検証して AuthInfo を返す。

    Raises:
        HTTPException(401): トークンが無効な場合
    """
    _get_firebase_app()
    try:
        decoded = fb_auth.verify_id_token(creds.credentials)
    except Exception as e:
        logger.warning("Invalid Firebase ID token: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired Firebase ID token",
        ) from e

    return AuthInfo(uid=decoded["uid"])


async def get_current_uid(
    auth_info: AuthInfo = Depends(get_auth_info),
) -> str:
    """get_auth_info() の uid のみを返すラッパー"""
    return auth_info.uid


# ── Firestore クライアント（シングルトン） ──────────────────────────────────────

_firestore_client: firestore.Client | None = None


def _get_firestore_client() -> firestore.Client:
    global _firestore_client
    if _firestore_client is None:
        _firestore_client = create_firestore_client(_get_config())
    return _firestore_client


# ── ワークフロー依存 ───────────────────────────────────────────────────────────


def get_raffle_workflow() -> RaffleCompletionWorkflow:
    """RaffleCompletionWorkflow を返す依存関数（リクエストごとに生成）"""
    return create_raffle_workflow(_get_firestore_client(), _get_config())
