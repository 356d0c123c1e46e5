"""
BaseRepositoryの基本機能と、MemberRepository固有の機能の両方をテストします。

```テスト実行コマンド
$ pytest tests/repositories/test_member_repository.py
```
"""

import pytest
from sqlalchemy import inspect
from sqlalchemy.exc import OperationalError

from data_access.db_models import Member, Team
from data_access.dto import MemberDto, UsernameOnly
from data_access.errors import (
    ConstraintViolation,
    InvalidQuery,
    NonUniqueResult,
    NotFound,
    StoreUnavailable,
)
from data_access.query.paging import Direction, PageRequest, Sort
from data_access.query.spec import Comparator
from data_access.repositories.member_repository import MemberRepository
from data_access.repositories.team_repository import TeamRepository


@pytest.fixture(scope="function")
def member_repository(db_session):
    return MemberRepository(db_session)


@pytest.fixture(scope="function")
def team_repository(db_session):
    return TeamRepository(db_session)


@pytest.fixture(scope="function")
def seven_members_age_10(member_repository):
    for i in range(1, 8):
        member_repository.save(Member(f"member{i}", 10))


def test_save_and_find_by_id(db_session, member_repository):
    """AAA(Arrange, Act, Assert)パターンに従い、Memberの保存と取得をテストします。"""
    # Arrenge:準備
    member = Member("memberA", 27)
    # Act:実行
    saved = member_repository.save(member)
    db_session.expunge_all()  # キャッシュを捨ててストアから読み直す
    found = member_repository.find_by_id(saved.id)
    # Assert:検証
    assert saved.id is not None
    assert found is not None
    assert found is not member
    assert (found.id, found.username, found.age) == (member.id, "memberA", 27)


def test_find_one_returns_cached_instance(member_repository):
    """同じUnit of Work内では、IDで取得したインスタンスは保存したものと同一であることを確認します。"""
    member1 = member_repository.save(Member("member1"))
    member2 = member_repository.save(Member("member2"))

    assert member_repository.find_by_id(member1.id) is member1
    assert member_repository.find_by_id(member2.id) is member2


def test_find_by_id_not_found(member_repository):
    """存在しないIDを指定した場合、例外ではなくNoneが返ることを確認します。"""
    assert member_repository.find_by_id(9999) is None
    assert member_repository.exists_by_id(9999) is False


def test_get_by_id_not_found_raises(member_repository):
    with pytest.raises(NotFound):
        member_repository.get_by_id(9999)


def test_age_defaults_to_zero(db_session, member_repository):
    member = member_repository.save(Member("memberA"))
    db_session.expunge_all()
    assert member_repository.get_by_id(member.id).age == 0


def test_find_all_and_count(member_repository):
    member_repository.save(Member("member1"))
    member_repository.save(Member("member2"))

    result = member_repository.find_all()

    assert len(result) == 2
    assert member_repository.count() == 2


def test_count_after_save_and_delete(member_repository):
    """N件保存してM件削除した後の件数がN-Mになることを確認します。"""
    members = [member_repository.save(Member(f"member{i}")) for i in range(5)]

    member_repository.delete(members[0])
    member_repository.delete_by_id(members[1].id)

    assert member_repository.count() == 3


def test_delete(member_repository):
    member1 = member_repository.save(Member("member1"))
    member2 = member_repository.save(Member("member2"))

    member_repository.delete(member1)
    member_repository.delete(member2)

    assert member_repository.count() == 0
    assert member_repository.find_by_id(member1.id) is None


def test_delete_unknown_identity_raises(member_repository):
    """存在しないIDの削除は成功扱いにせず、NotFoundとなることを確認します。"""
    member = member_repository.save(Member("member1"))
    member_repository.delete(member)

    with pytest.raises(NotFound):
        member_repository.delete(member)
    with pytest.raises(NotFound):
        member_repository.delete_by_id(9999)
    with pytest.raises(NotFound):
        member_repository.delete(Member("never saved"))


def test_save_updates_detached_entity(db_session, member_repository):
    """IDが採番済みのセッション外エンティティをsaveすると更新になることを確認します。"""
    member = member_repository.save(Member("member1", 10))
    db_session.expunge(member)
    member.username = "renamed"

    merged = member_repository.save(member)
    db_session.expunge_all()

    assert merged.id == member.id
    assert member_repository.count() == 1
    assert member_repository.get_by_id(member.id).username == "renamed"


def test_find_by_username_and_age_greater_than(member_repository):
    member_repository.save(Member("member1", 10))
    member_repository.save(Member("member1", 20))

    result = member_repository.find_by_username_and_age_greater_than("member1", 15)

    assert len(result) == 1
    assert result[0].username == "member1"
    assert result[0].age == 20


def test_find_by_username_and_age_greater_than_is_exact_subset(member_repository):
    """名前が一致し、年齢が厳密に大きいものだけが返ることを確認します。"""
    data = [("a", 15), ("a", 16), ("a", 30), ("b", 40), ("a", 10)]
    saved = [member_repository.save(Member(name, age)) for name, age in data]

    result = member_repository.find_by_username_and_age_greater_than("a", 15)

    expected = {m.id for m in saved if m.username == "a" and m.age > 15}
    assert {m.id for m in result} == expected


def test_find_by_username_with_named_query(member_repository):
    member_repository.save(Member("member1", 10))
    member_repository.save(Member("member2", 20))

    result = member_repository.find_by_username("member1")

    assert len(result) == 1
    assert result[0].age == 10


def test_find_by_username_native(db_session, member_repository):
    member = member_repository.save(Member("member1", 10))
    member_repository.save(Member("member2", 20))
    db_session.expunge_all()

    result = member_repository.find_by_username_native("member1")

    assert [(m.id, m.username, m.age) for m in result] == [(member.id, "member1", 10)]


def test_find_member(member_repository):
    member_repository.save(Member("member1", 10))
    member_repository.save(Member("member2", 20))

    result = member_repository.find_member("member1", 10)

    assert len(result) == 1
    assert result[0].age == 10
    assert member_repository.find_member("member1", 20) == []


def test_find_username_list(member_repository):
    member_repository.save(Member("member1", 10))
    member_repository.save(Member("member2", 20))

    username_list = member_repository.find_username_list()

    assert sorted(username_list) == ["member1", "member2"]


def test_find_member_dto(member_repository, team_repository):
    team_a = team_repository.save(Team("teamA"))
    member1 = member_repository.save(Member("member1", 10, team_a))
    member_repository.save(Member("no team", 20))  # チームなしは結合で除外される

    result = member_repository.find_member_dto()

    assert result == [MemberDto(member1.id, "member1", "teamA")]


def test_find_by_names(member_repository):
    member1 = member_repository.save(Member("member1", 10))
    member2 = member_repository.save(Member("member2", 20))
    member_repository.save(Member("member3", 30))

    result = member_repository.find_by_names(["member1", "member2"])

    assert len(result) == 2
    assert set(result) == {member1, member2}
    assert member_repository.find_by_names([]) == []


def test_return_types(member_repository):
    """リスト・単件（該当なしはNone）の各戻り値を確認します。"""
    member1 = member_repository.save(Member("member1", 10))
    member_repository.save(Member("member2", 20))

    result = member_repository.find_list_by_username("member1")
    find_member = member_repository.find_member_by_username("member1")
    optional_member = member_repository.find_member_by_username("member2")

    assert result == [member1]
    assert find_member is member1
    assert optional_member.age == 20
    assert member_repository.find_member_by_username("nobody") is None
    assert member_repository.find_list_by_username("nobody") == []


def test_find_member_by_username_non_unique(member_repository):
    member_repository.save(Member("member1", 10))
    member_repository.save(Member("member1", 20))

    with pytest.raises(NonUniqueResult):
        member_repository.find_member_by_username("member1")


def test_paging(member_repository, seven_members_age_10):
    """7件を3件ずつ、usernameの降順で分割した3ページ目（index 2）を確認します。"""
    page_request = PageRequest.of(2, 3, Sort.by("username", direction=Direction.DESC))

    page = member_repository.find_by_age(10, page_request)

    assert len(page.content) == 1
    assert page.content[0].username == "member1"
    assert page.total_elements == 7
    assert page.number == 2
    assert page.total_pages == 3
    assert page.is_last is True
    assert page.has_next is False


def test_paging_first_page(member_repository, seven_members_age_10):
    member_repository.save(Member("other age", 20))
    page_request = PageRequest.of(0, 3, Sort.by("username", direction=Direction.DESC))

    page = member_repository.find_by_age(10, page_request)

    assert [m.username for m in page.content] == ["member7", "member6", "member5"]
    assert page.total_elements == 7  # 年齢20の会員は数えない
    assert page.is_first is True
    assert page.has_next is True
    assert page.is_last is False


def test_slicing(member_repository, seven_members_age_10):
    page_request = PageRequest.of(0, 3, Sort.by("username", direction=Direction.DESC))

    result = member_repository.find_slice_by_age(10, page_request)

    assert len(result.content) == 3
    assert result.number == 0
    assert result.has_next is True
    assert result.is_last is False


def test_slicing_last_slice(member_repository, seven_members_age_10):
    page_request = PageRequest.of(2, 3, Sort.by("username", direction=Direction.DESC))

    result = member_repository.find_slice_by_age(10, page_request)

    assert [m.username for m in result.content] == ["member1"]
    assert result.number == 2
    assert result.has_next is False
    assert result.is_last is True


def test_bulk_update(member_repository):
    member_repository.save(Member("member1", 10))
    member_repository.save(Member("member2", 19))
    member_repository.save(Member("member3", 20))
    member_repository.save(Member("member4", 21))
    member_repository.save(Member("member5", 40))

    result_count = member_repository.bulk_age_plus(20)

    assert result_count == 3


def test_bulk_update_invalidates_cached_entities(member_repository):
    """一括更新の直後に、キャッシュ済みの古い値ではなく更新後の値が読めることを確認します。"""
    ages = [10, 19, 20, 21, 40]
    members = [member_repository.save(Member(f"member{i}", age)) for i, age in enumerate(ages)]
    member3 = members[2]
    assert member_repository.find_by_id(member3.id).age == 20  # キャッシュに載せる

    result_count = member_repository.bulk_age_plus(20)

    assert result_count == 3
    assert member_repository.find_by_id(member3.id).age == 21
    assert [m.age for m in members] == [10, 19, 21, 22, 41]


def test_bulk_update_flushes_pending_changes(member_repository):
    """一括更新の前に、未反映の変更がストアに反映されることを確認します。"""
    member = member_repository.save(Member("member1", 10))
    member.age = 30  # 未flush

    result_count = member_repository.bulk_age_plus(20)

    assert result_count == 1
    assert member.age == 31


def test_bulk_update_with_spec(member_repository):
    for age in [10, 19, 20, 21, 40]:
        member_repository.save(Member("m", age))
    spec = member_repository.spec().where("age", Comparator.GTE, 20)

    result_count = member_repository.bulk_update(spec, {"age": Member.age + 1})

    assert result_count == 3
    ages = sorted(m.age for m in member_repository.find_all())
    assert ages == [10, 19, 21, 22, 41]


def test_bulk_update_no_rows_is_not_error(member_repository):
    member_repository.save(Member("member1", 10))

    assert member_repository.bulk_age_plus(100) == 0


def test_bulk_update_rejects_sort_and_unknown_field(member_repository):
    sorted_spec = member_repository.spec().order_by(Sort.by("age"))
    with pytest.raises(InvalidQuery):
        member_repository.bulk_update(sorted_spec, {"age": 1})
    with pytest.raises(InvalidQuery):
        member_repository.bulk_update(member_repository.spec(), {"nickname": "x"})


def test_find_all_loads_team_eagerly(db_session, member_repository, team_repository):
    """findAllがteamを先行ロードすることを確認します（エンティティグラフ）。"""
    team_a = team_repository.save(Team("teamA"))
    team_b = team_repository.save(Team("teamB"))
    member_repository.save(Member("member1", 10, team_a))
    member_repository.save(Member("member2", 20, team_b))
    member_repository.save(Member("member3", 30))
    db_session.expunge_all()

    members = member_repository.find_all()

    assert len(members) == 3
    for member in members:
        assert "team" not in inspect(member).unloaded
    assert sorted(m.team.name for m in members if m.team) == ["teamA", "teamB"]


def test_plain_query_leaves_team_lazy(db_session, member_repository, team_repository):
    team_a = team_repository.save(Team("teamA"))
    member_repository.save(Member("member1", 10, team_a))
    db_session.expunge_all()

    member = member_repository.find_list_by_username("member1")[0]

    assert "team" in inspect(member).unloaded


def test_find_member_fetch_join_team(db_session, member_repository, team_repository):
    team_a = team_repository.save(Team("teamA"))
    member_repository.save(Member("member1", 10, team_a))
    member_repository.save(Member("member2", 20))
    db_session.expunge_all()

    members = member_repository.find_member_fetch_join_team()

    assert [m.username for m in members] == ["member1"]
    assert "team" not in inspect(members[0]).unloaded
    assert members[0].team.name == "teamA"


def test_find_member_entity_graph(db_session, member_repository, team_repository):
    team_a = team_repository.save(Team("teamA"))
    member_repository.save(Member("member1", 10, team_a))
    member_repository.save(Member("member2", 20))
    db_session.expunge_all()

    members = member_repository.find_member_entity_graph()
    by_username = member_repository.find_entity_graph_by_username("member1")

    assert len(members) == 2
    assert all("team" not in inspect(m).unloaded for m in members)
    assert len(by_username) == 1
    assert by_username[0].team.name == "teamA"


def test_call_custom(member_repository):
    """独自実装のメソッドがMemberRepositoryから呼び出せることを確認します。"""
    member1 = member_repository.save(Member("member1"))
    member2 = member_repository.save(Member("member2"))

    result = member_repository.find_member_custom()

    assert result == [member1, member2]


def test_call_custom_store_error_is_translated(mocker, db_session, member_repository):
    """独自実装のメソッドでも、接続系の例外はStoreUnavailableとして通知されることを確認します。"""
    mocker.patch.object(
        db_session,
        "scalars",
        side_effect=OperationalError("SELECT", {}, Exception("connection lost")),
    )

    with pytest.raises(StoreUnavailable):
        member_repository.find_member_custom()


def test_projections(member_repository, team_repository):
    team_a = team_repository.save(Team("teamA"))
    member_repository.save(Member("m1", 0, team_a))
    member_repository.save(Member("m2", 0, team_a))

    result = member_repository.find_projections_by_username("m1")

    assert result == [UsernameOnly("m1")]


def test_find_all_with_unknown_field_raises(member_repository):
    with pytest.raises(InvalidQuery):
        member_repository.find_all(member_repository.spec().where("nickname", Comparator.EQ, "x"))


def test_save_constraint_violation(team_repository):
    """一意制約違反がConstraintViolationとして通知されることを確認します。"""
    team_repository.save(Team("teamA"))

    with pytest.raises(ConstraintViolation):
        team_repository.save(Team("teamA"))
