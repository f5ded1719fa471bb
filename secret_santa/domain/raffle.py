"""Secret Santa 抽選アルゴリズム

Fisher-Yates シャッフル + 円環割り当てで、単一サイクルの完全順列（derangement）を作る。

- 全員がちょうど1人に贈る
- 全員がちょうど1人から受け取る
- 自分自身には当たらない

純粋関数のみ。失敗は RaffleResult / ValidationResult で返し、例外は投げない。
"""

from __future__ import annotations

import math
import random
from collections.abc import Callable, Sequence
from typing import TypeVar

from secret_santa.domain.models import RaffleAssignment, RaffleResult, ValidationResult

T = TypeVar("T")

RandomFn = Callable[[], float]  # [0, 1) の一様乱数を返す


def shuffle(items: Sequence[T], random_fn: RandomFn = random.random) -> list[T]:
    """
    Fisher-Yates シャッフル。元のシーケンスは変更せず新しいリストを返す。

    Args:
        items: シャッフル対象
        random_fn: テスト用に差し替え可能な乱数関数
    """
    result = list(items)
    for i in range(len(result) - 1, 0, -1):
        j = math.floor(random_fn() * (i + 1))
        result[i], result[j] = result[j], result[i]
    return result


class RaffleAssigner:
    """
    参加者リストから抽選結果を作る。

    乱数源はコンストラクタで注入でき、assign() 呼び出しごとにも上書きできる。
    """

    MIN_PARTICIPANTS = 2

    def __init__(self, random_fn: RandomFn = random.random) -> None:
        self._random_fn = random_fn

    def assign(
        self,
        participants: Sequence[str],
        random_fn: RandomFn | None = None,
    ) -> RaffleResult:
        """
        抽選を実行する。

        Args:
            participants: 参加者IDのリスト（重複や2人未満も受け付けて失敗として返す）
            random_fn: この呼び出しだけで使う乱数関数

        Returns:
            RaffleResult: 成功時は参加者数と同数の割り当て
        """
        if len(participants) < self.MIN_PARTICIPANTS:
            return RaffleResult(
                success=False,
                error="At least 2 members are required for a raffle",
            )

        if len(set(participants)) != len(participants):
            return RaffleResult(success=False, error="Duplicate member IDs detected")

        shuffled = shuffle(participants, random_fn or self._random_fn)

        # shuffled[k] が shuffled[k+1] に贈る。末尾は先頭に贈る
        n = len(shuffled)
        assignments = [
            RaffleAssignment(receiver_id=shuffled[(k + 1) % n], secret_santa_id=santa)
            for k, santa in enumerate(shuffled)
        ]

        validation = self.validate(assignments, participants)
        if not validation.valid:
            return RaffleResult(success=False, error=validation.error)

        return RaffleResult(success=True, assignments=assignments)

    @staticmethod
    def validate(
        assignments: Sequence[RaffleAssignment],
        participants: Sequence[str],
    ) -> ValidationResult:
        """割り当てがルールを満たしているか検証する。最初に見つかった違反を返す"""
        if len(assignments) != len(participants):
            return ValidationResult(
                valid=False,
                error=(
                    f"Expected {len(participants)} assignments, "
                    f"got {len(assignments)}"
                ),
            )

        members = set(participants)
        receivers: set[str] = set()
        santas: set[str] = set()

        for a in assignments:
            if a.receiver_id == a.secret_santa_id:
                return ValidationResult(
                    valid=False,
                    error=f"Self-assignment detected for user {a.receiver_id}",
                )
            if a.receiver_id not in members:
                return ValidationResult(
                    valid=False, error=f"Unknown receiver: {a.receiver_id}"
                )
            if a.secret_santa_id not in members:
                return ValidationResult(
                    valid=False, error=f"Unknown secret santa: {a.secret_santa_id}"
                )
            if a.receiver_id in receivers:
                return ValidationResult(
                    valid=False, error=f"Duplicate receiver: {a.receiver_id}"
                )
            if a.secret_santa_id in santas:
                return ValidationResult(
                    valid=False, error=f"Duplicate secret santa: {a.secret_santa_id}"
                )
            receivers.add(a.receiver_id)
            santas.add(a.secret_santa_id)

        for member_id in participants:
            if member_id not in receivers:
                return ValidationResult(
                    valid=False, error=f"Member {member_id} is not receiving a gift"
                )
            if member_id not in santas:
                return ValidationResult(
                    valid=False, error=f"Member {member_id} is not giving a gift"
                )

        return ValidationResult(valid=True)


def perform_raffle(
    participants: Sequence[str], random_fn: RandomFn = random.random
) -> RaffleResult:
    """RaffleAssigner(random_fn).assign() のショートカット"""
    return RaffleAssigner(random_fn).assign(participants)


def validate_raffle_result(
    assignments: Sequence[RaffleAssignment], participants: Sequence[str]
) -> ValidationResult:
    return RaffleAssigner.validate(assignments, participants)
