"""ロギング設定モジュール

Cloud Run / Cloud Logging 環境ではJSON形式、ローカルではテキスト形式でログを出力する。

使い方:
    from secret_santa.logging_config import setup_logging
    setup_logging()

    # group_id などを構造化フィールドとして付与する場合
    logger.info("Raffle completed", extra={"extra_fields": {"group_id": gid}})

環境変数:
    LOG_LEVEL: ログレベル (DEBUG, INFO, WARNING, ERROR, CRITICAL) デフォルト: INFO
    LOG_FORMAT: "json" / "text" で出力形式を強制（未設定なら環境で自動判定）
    K_SERVICE / CLOUD_RUN_JOB: Cloud Run 環境判定（自動設定される）
"""

import json
import logging
import os

# google-cloud-firestore / firebase_admin が DEBUG で大量に出すロガー
_NOISY_LOGGERS = ("google.auth", "google.api_core", "urllib3", "grpc")


class CloudLoggingFormatter(logging.Formatter):
    """Cloud Logging互換のJSONフォーマッタ

    JSON形式で `severity` フィールドを含めることでログレベルが正しくマッピングされる。
    `extra_fields` は最上位に展開し、`labels` は Cloud Logging のラベルとして出力する。
    """

    LEVEL_TO_SEVERITY = {
        "DEBUG": "DEBUG",
        "INFO": "INFO",
        "WARNING": "WARNING",
        "ERROR": "ERROR",
        "CRITICAL": "CRITICAL",
    }

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict = {
            "severity": self.LEVEL_TO_SEVERITY.get(record.levelname, "DEFAULT"),
            "message": record.getMessage(),
            "logger": record.name,
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
        }
        if record.exc_info and record.exc_info[0]:
            log_entry["exception"] = self.formatException(record.exc_info)
        if hasattr(record, "extra_fields"):
            log_entry.update(record.extra_fields)
        if hasattr(record, "labels"):
            log_entry["logging.googleapis.com/labels"] = {
                k: str(v) for k, v in record.labels.items()
            }
        return json.dumps(log_entry, ensure_ascii=False, default=str)


def _use_json() -> bool:
    forced = os.getenv("LOG_FORMAT", "").lower()
    if forced in ("json", "text"):
        return forced == "json"
    # K_SERVICE: Cloud Run Services, CLOUD_RUN_JOB: Cloud Run Jobs
    return bool(os.getenv("K_SERVICE") or os.getenv("CLOUD_RUN_JOB"))


def setup_logging() -> None:
    """ログ設定を初期化する（複数回呼んでもハンドラは1つ）"""
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    level = getattr(logging, log_level, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    handler = logging.StreamHandler()
    if _use_json():
        handler.setFormatter(CloudLoggingFormatter())
    else:
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )

    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
