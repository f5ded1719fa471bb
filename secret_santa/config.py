"""設定管理 - 環境変数の型安全な読み込み"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv


@dataclass(frozen=True)
class AppConfig:
    """アプリケーション設定"""

    project_id: str
    groups_collection: str = "groups"
    assignments_collection: str = "assignments"

    @classmethod
    def from_env(cls) -> "AppConfig":
        """環境変数から設定を読み込む"""
        load_dotenv()

        project_id = os.getenv("PROJECT_ID")
        if not project_id:
            raise ValueError("PROJECT_ID is not set in environment")

        return cls(
            project_id=project_id,
            groups_collection=os.getenv("GROUPS_COLLECTION", "groups"),
            assignments_collection=os.getenv("ASSIGNMENTS_COLLECTION", "assignments"),
        )
