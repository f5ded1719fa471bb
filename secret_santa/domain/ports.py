"""Ports - 永続化層のインターフェース定義（ABC）

実装クラス（Adapter）はこれらのABCを継承し、全ての抽象メソッドを実装する必要があります。
実装漏れはインスタンス化時に検出されます。
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from secret_santa.domain.models import Assignment, Group


class GroupRepository(ABC):
    """グループの読み書き（Firestore等）"""

    @abstractmethod
    def find_by_id(self, group_id: str) -> Group | None:
        """グループを取得。存在しない場合はNoneを返す"""
        pass

    @abstractmethod
    def update(self, group: Group) -> None:
        """グループを更新。存在しない場合は GroupNotFoundError"""
        pass


class AssignmentRepository(ABC):
    """割り当ての永続化（Firestore等）"""

    @abstractmethod
    def generate_id(self) -> str:
        """新しい割り当てIDを払い出す"""
        pass

    @abstractmethod
    def create_batch(self, assignments: list[Assignment]) -> None:
        """全件を原子的に書き込む（全件成功 or 全件失敗）。空リストは何もしない"""
        pass

    @abstractmethod
    def find_by_group_and_secret_santa(
        self, group_id: str, secret_santa_id: str
    ) -> Assignment | None:
        """グループ内で secret_santa_id が贈る側の割り当てを取得"""
        pass

    @abstractmethod
    def find_by_group_id(self, group_id: str) -> list[Assignment]:
        """グループの割り当てを作成順で取得"""
        pass

    @abstractmethod
    def delete_by_group_id(self, group_id: str) -> None:
        """グループの割り当てを一括削除"""
        pass


class RaffleCommitter(ABC):
    """抽選結果のコミット（割り当ての書き込み + グループの completed 化）"""

    @abstractmethod
    def commit(self, group: Group, assignments: list[Assignment]) -> None:
        """
        割り当てを保存し、グループを抽選完了状態に更新する。

        Args:
            group: complete_raffle() 済みのグループ
            assignments: 保存する割り当て（全メンバー分）

        Raises:
            RaffleConflictError: 保存済みのグループがもう pending でない場合
            GroupNotFoundError: グループが削除されていた場合
        """
        pass
