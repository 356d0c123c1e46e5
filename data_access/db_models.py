from sqlalchemy.schema import Column
from sqlalchemy.types import String, Integer
from sqlalchemy.orm import DeclarativeBase, relationship
from sqlalchemy import ForeignKey


class Base(DeclarativeBase):
    """ベースクラス作成"""

    pass


class Team(Base):
    """チームテーブルのクラス

    `members`はMember.teamから導出される逆参照。関連の所有側はMember。
    """

    __tablename__ = "team"

    id = Column("team_id", Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False, unique=True)

    members = relationship("Member", back_populates="team")

    def __init__(self, name: str):
        self.name = name

    def __repr__(self) -> str:
        return f"Team(id={self.id}, name={self.name})"


class Member(Base):
    """会員テーブルのクラス"""

    __tablename__ = "member"

    id = Column("member_id", Integer, primary_key=True, autoincrement=True)
    username = Column(String(100), nullable=False)
    age = Column(Integer, nullable=False, default=0)
    team_id = Column(Integer, ForeignKey("team.team_id"), nullable=True)

    team = relationship("Team", back_populates="members")

    def __init__(self, username: str, age: int = 0, team: Team | None = None):
        self.username = username
        self.age = age
        if team is not None:
            self.change_team(team)

    def change_team(self, team: Team) -> None:
        """所属チームを変更する。

        関連付けの唯一の変更口。back_populatesにより、旧チームのmembersからの除去と
        新チームのmembersへの追加が同時に行われる。
        """
        self.team = team

    def __repr__(self) -> str:
        # teamは遅延ロードを避けるため出力しない
        return f"Member(id={self.id}, username={self.username}, age={self.age})"
