"""
MemberRepositoryに機能を追加するための拡張用クラス。

共通のクエリ指定や名前付きクエリで表現しにくい処理は、
ここにセッションを直接使って実装し、MemberRepositoryに継承させる。
"""

from typing import List

from sqlalchemy import select
from sqlalchemy.orm import Session

from data_access.db_models import Member
from data_access.errors import translate_store_errors


class MemberRepositoryCustom:
    session: Session

    def find_member_custom(self) -> List[Member]:
        statement = select(Member).order_by(Member.id)
        with translate_store_errors("Member.find_member_custom"):
            return list(self.session.scalars(statement).all())
