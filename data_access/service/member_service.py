"""会員関連のユースケースを担う、サービス層のモジュール。

Web層など外部の呼び出し元は、このサービスを通じて会員データを扱う。
`MemberService`は`UnitOfWork`で1回の呼び出しごとにトランザクションを区切り、
エンティティはwithブロックの内側でDTOや値に変換してから返す。

Example:
    # uowはUnitOfWorkの具象インスタンス
    member_service = MemberService(uow, default_page_size=5)
    page = member_service.list_members(page=1)
    page.content  # List[MemberDto]
"""

import logging
from typing import Optional

from data_access.config_loader import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from data_access.db_models import Member
from data_access.dto import MemberDto
from data_access.query.paging import Page, PageRequest, Sort
import data_access.service.unitofwork as uow

logger = logging.getLogger(__name__)

_DEFAULT_SORT = Sort.by("username")


class MemberService:
    def __init__(
        self,
        uow: uow.UnitOfWork,
        default_page_size: int = DEFAULT_PAGE_SIZE,
        max_page_size: int = MAX_PAGE_SIZE,
    ):
        self.uow = uow
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size

    def find_member_username(self, member_id: int) -> str:
        """指定IDの会員名を返す。存在しない場合はNotFound"""
        with self.uow:
            member = self.uow.members.get_by_id(member_id)
            username = member.username
        return username

    def list_members(
        self, page: int = 0, size: Optional[int] = None, sort: Optional[Sort] = None
    ) -> Page[MemberDto]:
        """会員一覧をページ単位でDTOに変換して返す。

        sizeを省略した場合はdefault_page_size、max_page_sizeを超える場合は切り詰める。
        0以下のsizeは切り詰めずにInvalidQueryとする。
        sortを省略した場合はusernameの昇順。
        """
        if size is None:
            size = self.default_page_size
        size = min(size, self.max_page_size)
        page_request = PageRequest.of(page, size, sort or _DEFAULT_SORT)
        with self.uow:
            result = self.uow.members.find_page(None, page_request)
            # teamは遅延ロードを避けるため詰めない
            dto_page = result.map(lambda m: MemberDto(m.id, m.username, None))
        return dto_page

    def register_members(self, count: int, prefix: str = "user") -> int:
        """`{prefix}{i}`（年齢i）の会員をcount件登録し、登録件数を返す"""
        with self.uow:
            for i in range(count):
                self.uow.members.save(Member(f"{prefix}{i}", i))
        logger.info("会員を%d件登録しました。", count)
        return count
