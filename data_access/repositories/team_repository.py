"""
Teamモデルのためのリポジトリクラス。
汎用的なCRUD操作はBaseRepositoryから継承し、
Teamモデルに特化したデータアクセスロジックを提供します。
"""

from typing import List

from sqlalchemy import select
from sqlalchemy.orm import Session

from data_access.db_models import Member, Team
from data_access.query.resolver import resolve_select
from data_access.query.spec import Comparator
from data_access.repositories.base_repository import BaseRepository


class TeamRepository(BaseRepository[Team, int]):
    def __init__(self, session: Session):
        super().__init__(session, Team)

    def find_by_name(self, name: str) -> Team | None:
        spec = self.spec().where("name", Comparator.EQ, name)
        return self.executor.one_or_none(resolve_select(spec))

    def find_member_ids(self, team_id: int) -> List[int]:
        """チームに所属する会員のIDを、ストアの所有側（member.team_id）から求めて返す"""
        statement = select(Member.id).where(Member.team_id == team_id).order_by(Member.id)
        return self.executor.scalars(statement)
