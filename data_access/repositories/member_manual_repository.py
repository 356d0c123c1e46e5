"""
Memberモデルを、共通基盤を使わずセッションとステートメントだけで扱うリポジトリ。

MemberRepositoryと同じ操作を手書きで実装したもの。
比較用に残しているため、新しい検索メソッドはMemberRepositoryに追加すること。
"""

import logging
from typing import List

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from data_access.db_models import Member
from data_access.errors import NotFound, translate_store_errors
from data_access.repositories.member_repository import FIND_BY_USERNAME

logger = logging.getLogger(__name__)


class MemberManualRepository:
    def __init__(self, session: Session):
        self.session = session

    def save(self, member: Member) -> Member:
        with translate_store_errors("MemberManualRepository.save"):
            self.session.add(member)
            self.session.flush()
        return member

    def delete(self, member: Member) -> None:
        existing = self.find(member.id) if member.id is not None else None
        if existing is None:
            raise NotFound(f"Memberが見つかりません: id={member.id}")
        with translate_store_errors("MemberManualRepository.delete"):
            self.session.delete(existing)
            self.session.flush()

    def find_all(self) -> List[Member]:
        return list(self.session.scalars(select(Member)).all())

    def find_by_id(self, id: int) -> Member | None:
        return self.session.get(Member, id)

    def find(self, id: int) -> Member | None:
        return self.session.get(Member, id)

    def count(self) -> int:
        return self.session.scalar(select(func.count()).select_from(Member))

    def find_by_username_and_age_greater_than(self, username: str, age: int) -> List[Member]:
        statement = select(Member).where(Member.username == username, Member.age > age)
        return list(self.session.scalars(statement).all())

    def find_by_username(self, username: str) -> List[Member]:
        """MemberRepositoryと共有の名前付きクエリ"Member.findByUsername"を使う"""
        statement = FIND_BY_USERNAME.statement
        return list(self.session.scalars(statement, FIND_BY_USERNAME.bind(username)).all())

    def find_by_page(self, age: int, offset: int, limit: int) -> List[Member]:
        statement = (
            select(Member)
            .where(Member.age == age)
            .order_by(Member.username.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(self.session.scalars(statement).all())

    def total_count(self, age: int) -> int:
        statement = select(func.count()).select_from(Member).where(Member.age == age)
        return self.session.scalar(statement)

    def bulk_age_plus(self, age: int) -> int:
        """age以上の会員の年齢を1加算する。

        ストアを直接更新するため、実行後にセッション内の全インスタンスを失効させる。
        """
        statement = (
            update(Member)
            .where(Member.age >= age)
            .values(age=Member.age + 1)
            .execution_options(synchronize_session=False)
        )
        with translate_store_errors("MemberManualRepository.bulk_age_plus"):
            self.session.flush()
            try:
                result_count = self.session.execute(statement).rowcount
            finally:
                self.session.expire_all()
        logger.info("[BULK UPDATE] table=member, affected=%d", result_count)
        return result_count
