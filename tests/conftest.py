"""
测试配置

提供内存文档存储、可控时钟和命令系统配置等 fixtures
"""

import copy
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

import pytest

from duquebot.core.interfaces import IDocumentStore, StorageError
from duquebot.core.settings import CommandSettings
from duquebot.storage.schema import SCHEMA, get_table, split_index_key


class InMemoryDocumentStore(IDocumentStore):
    """
    内存文档存储

    与 SQLite 实现使用同一份表结构：同样的索引校验、排序规则和唯一约束。
    事务通过快照实现，块内抛出异常时恢复快照。
    """

    def __init__(self):
        self.tables: Dict[str, Dict[int, Dict[str, Any]]] = {name: {} for name in SCHEMA}
        self.operations: List[Tuple[str, str]] = []
        self.fail_on: Optional[Tuple[str, str]] = None
        self.initialized = False
        self.closed = False
        self._next_id = 1
        self._in_transaction = False

    async def initialize(self) -> None:
        self.initialized = True

    async def close(self) -> None:
        self.closed = True

    def _record(self, operation: str, table: str) -> None:
        self.operations.append((operation, table))
        if self.fail_on == (operation, table):
            raise StorageError(f"模拟 {operation} 失败 ({table})", operation=operation, table=table)

    def count(self, operation: str, table: str) -> int:
        """统计某种操作的调用次数"""
        return self.operations.count((operation, table))

    def rows(self, table: str) -> List[Dict[str, Any]]:
        """按 id 顺序返回表中所有记录的副本"""
        return [copy.deepcopy(doc) for _, doc in sorted(self.tables[table].items())]

    def _query(self, table: str, index: Optional[str], order: str, key: Dict[str, Any]) -> List[Dict[str, Any]]:
        schema = get_table(table)
        if index is None:
            if key:
                raise ValueError("按键过滤时必须指定索引")
            filters, order_columns = (), ()
        else:
            filters, order_columns = split_index_key(schema, index, key)

        docs = [
            doc for doc in self.tables[table].values()
            if all(doc.get(column) == key[column] for column in filters)
        ]
        docs.sort(
            key=lambda doc: tuple(doc.get(column) for column in order_columns) + (doc["id"],),
            reverse=(order == "desc")
        )
        return docs

    async def get(self, table: str, index: str, **key: Any) -> Optional[Dict[str, Any]]:
        self._record("get", table)
        schema = get_table(table)
        _, remaining = split_index_key(schema, index, key)
        if remaining:
            raise ValueError(f"get 需要完整的索引键: {index}")

        docs = self._query(table, index, "asc", key)
        return copy.deepcopy(docs[0]) if docs else None

    async def list(
        self,
        table: str,
        index: Optional[str] = None,
        order: str = "asc",
        limit: Optional[int] = None,
        **key: Any
    ) -> List[Dict[str, Any]]:
        self._record("list", table)
        docs = self._query(table, index, order, key)
        if limit is not None:
            docs = docs[:limit]
        return copy.deepcopy(docs)

    def _check_unique(self, table: str, doc: Dict[str, Any]) -> None:
        for name, index in get_table(table).indexes.items():
            if not index.unique:
                continue
            for other in self.tables[table].values():
                if other["id"] != doc["id"] and all(other.get(c) == doc.get(c) for c in index.columns):
                    raise StorageError(f"唯一约束冲突: {table}.{name}", operation="insert", table=table)

    async def insert(self, table: str, fields: Dict[str, Any]) -> int:
        self._record("insert", table)
        get_table(table).check_columns(fields)

        doc_id = self._next_id
        doc = {"id": doc_id, **copy.deepcopy(fields)}
        self._check_unique(table, doc)

        self._next_id += 1
        self.tables[table][doc_id] = doc
        return doc_id

    async def patch(self, table: str, doc_id: int, fields: Dict[str, Any]) -> None:
        self._record("patch", table)
        get_table(table).check_columns(fields)
        if doc_id in self.tables[table]:
            self.tables[table][doc_id].update(copy.deepcopy(fields))

    async def delete(self, table: str, doc_id: int) -> None:
        self._record("delete", table)
        get_table(table)
        self.tables[table].pop(doc_id, None)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        if self._in_transaction:
            yield
            return

        snapshot = copy.deepcopy(self.tables)
        next_id = self._next_id
        self._in_transaction = True
        try:
            yield
        except BaseException:
            self.tables = snapshot
            self._next_id = next_id
            raise
        finally:
            self._in_transaction = False


class FakeClock:
    """可控的毫秒时钟"""

    def __init__(self, start: int = 1_700_000_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int = 1) -> int:
        self.now += ms
        return self.now


@pytest.fixture
def store():
    """内存文档存储"""
    return InMemoryDocumentStore()


@pytest.fixture
def clock():
    """固定时钟"""
    return FakeClock()


@pytest.fixture
def settings():
    """默认命令系统配置"""
    return CommandSettings()


@pytest.fixture(autouse=True)
def quiet_logging():
    """测试时降低日志级别"""
    logging.getLogger("duquebot").setLevel(logging.CRITICAL)
    yield
    logging.getLogger("duquebot").setLevel(logging.DEBUG)
