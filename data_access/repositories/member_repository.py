"""
Memberモデルのためのリポジトリクラス。

汎用的なCRUD操作はBaseRepositoryから、独自実装はMemberRepositoryCustomから継承し、
Memberモデルに特化したデータアクセスロジックを提供します。

検索メソッドは次のいずれかで実装する。
- QuerySpec: 条件（フィールド, 比較演算子, 値）をデータとして組み立てる
- 名前付きクエリ: 固定のステートメントとパラメータ名をモジュール読み込み時に登録・検証する
"""

from typing import List

from sqlalchemy import bindparam, select, text, update
from sqlalchemy.orm import Session, contains_eager, joinedload

from data_access.db_models import Member, Team
from data_access.dto import MemberDto, UsernameOnly
from data_access.query.named_query import NamedQuery, named_queries
from data_access.query.paging import Page, PageRequest, Slice
from data_access.query.resolver import resolve_select
from data_access.query.spec import Comparator, QuerySpec
from data_access.repositories.base_repository import BaseRepository
from data_access.repositories.member_repository_custom import MemberRepositoryCustom

FIND_BY_USERNAME = named_queries.register(
    NamedQuery(
        "Member.findByUsername",
        select(Member).where(Member.username == bindparam("username")),
        params=("username",),
    )
)

FIND_BY_USERNAME_NATIVE = named_queries.register(
    NamedQuery(
        "Member.findByUsernameNative",
        select(Member).from_statement(
            text(
                "SELECT member_id, username, age, team_id FROM member"
                " WHERE username = :username"
            )
        ),
        params=("username",),
    )
)

FIND_MEMBER = named_queries.register(
    NamedQuery(
        "Member.findMember",
        select(Member).where(
            Member.username == bindparam("username"), Member.age == bindparam("age")
        ),
        params=("username", "age"),
    )
)

FIND_USERNAME_LIST = named_queries.register(
    NamedQuery("Member.findUsernameList", select(Member.username), scalar=True)
)

FIND_MEMBER_DTO = named_queries.register(
    NamedQuery(
        "Member.findMemberDto",
        select(
            Member.id.label("id"),
            Member.username.label("username"),
            Team.name.label("team_name"),
        ).join(Member.team),
        projection=MemberDto,
    )
)

FIND_BY_NAMES = named_queries.register(
    NamedQuery(
        "Member.findByNames",
        select(Member).where(Member.username.in_(bindparam("names", expanding=True))),
        params=("names",),
    )
)

FIND_PROJECTIONS_BY_USERNAME = named_queries.register(
    NamedQuery(
        "Member.findProjectionsByUsername",
        select(Member.username.label("username")).where(
            Member.username == bindparam("username")
        ),
        params=("username",),
        projection=UsernameOnly,
    )
)

# SET句の列名（age）はバインドパラメータ名に使えないため min_age とする
BULK_AGE_PLUS = named_queries.register(
    NamedQuery(
        "Member.bulkAgePlus",
        update(Member)
        .where(Member.age >= bindparam("min_age"))
        .values(age=Member.age + 1)
        .execution_options(synchronize_session=False),
        params=("min_age",),
        modifying=True,
    )
)

FIND_MEMBER_FETCH_JOIN_TEAM = named_queries.register(
    NamedQuery(
        "Member.findMemberFetchJoinTeam",
        select(Member).join(Member.team).options(contains_eager(Member.team)),
    )
)

FIND_MEMBER_ENTITY_GRAPH = named_queries.register(
    NamedQuery(
        "Member.findMemberEntityGraph",
        select(Member).options(joinedload(Member.team)),
    )
)


class MemberRepository(BaseRepository[Member, int], MemberRepositoryCustom):
    def __init__(self, session: Session):
        super().__init__(session, Member)

    def _by_username(self, username: str) -> QuerySpec[Member]:
        return self.spec().where("username", Comparator.EQ, username)

    def find_by_username_and_age_greater_than(self, username: str, age: int) -> List[Member]:
        spec = self._by_username(username).where("age", Comparator.GT, age)
        return self.executor.entities(resolve_select(spec))

    def find_by_username(self, username: str) -> List[Member]:
        return self.executor.run_named(FIND_BY_USERNAME, username=username)

    def find_by_username_native(self, username: str) -> List[Member]:
        return self.executor.run_named(FIND_BY_USERNAME_NATIVE, username)

    def find_member(self, username: str, age: int) -> List[Member]:
        return self.executor.run_named(FIND_MEMBER, username=username, age=age)

    def find_username_list(self) -> List[str]:
        return self.executor.run_named(FIND_USERNAME_LIST)

    def find_member_dto(self) -> List[MemberDto]:
        """チームに所属する会員を、(id, username, team_name)のDTOで返す"""
        return self.executor.run_named(FIND_MEMBER_DTO)

    def find_by_names(self, names: List[str]) -> List[Member]:
        return self.executor.run_named(FIND_BY_NAMES, list(names))

    def find_list_by_username(self, username: str) -> List[Member]:
        return self.executor.entities(resolve_select(self._by_username(username)))

    def find_member_by_username(self, username: str) -> Member | None:
        """単一の会員を返す。該当なしはNone、複数件はNonUniqueResult"""
        return self.executor.one_or_none(resolve_select(self._by_username(username)))

    def find_by_age(self, age: int, page_request: PageRequest) -> Page[Member]:
        spec = self.spec().where("age", Comparator.EQ, age)
        return self.find_page(spec, page_request)

    def find_slice_by_age(self, age: int, page_request: PageRequest) -> Slice[Member]:
        spec = self.spec().where("age", Comparator.EQ, age)
        return self.find_slice(spec, page_request)

    def bulk_age_plus(self, age: int) -> int:
        """age以上の会員の年齢を1加算し、影響行数を返す。実行後にキャッシュは無効化される"""
        return self.executor.run_named(BULK_AGE_PLUS, age)

    def find_member_fetch_join_team(self) -> List[Member]:
        return self.executor.run_named(FIND_MEMBER_FETCH_JOIN_TEAM)

    def find_all(self, spec: QuerySpec[Member] | None = None) -> List[Member]:
        """teamを先行ロードして返す"""
        spec = spec or self.spec()
        if "team" not in spec.fetch_paths:
            spec = spec.fetch("team")
        return super().find_all(spec)

    def find_member_entity_graph(self) -> List[Member]:
        return self.executor.run_named(FIND_MEMBER_ENTITY_GRAPH)

    def find_entity_graph_by_username(self, username: str) -> List[Member]:
        return self.executor.entities(resolve_select(self._by_username(username).fetch("team")))

    def find_projections_by_username(self, username: str) -> List[UsernameOnly]:
        return self.executor.run_named(FIND_PROJECTIONS_BY_USERNAME, username=username)
