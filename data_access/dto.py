"""読み取り専用のプロジェクション（DTO）。

エンティティ全体をロードせず、表示に必要な列だけを受け取るために使う。
フィールド名はクエリの列ラベルと一致させること。
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class MemberDto:
    id: int
    username: str
    team_name: str | None


@dataclass(frozen=True)
class UsernameOnly:
    username: str
