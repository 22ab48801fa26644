"""
SQLite 文档存储

IDocumentStore 的 SQLite 实现：
- 每个实体一张表，命名索引与 schema.SCHEMA 一致
- 阻塞的 sqlite3 调用在专用线程中执行，通过异步锁串行化
- 支持任务级事务，事务内的所有写入一起提交或回滚
"""

import asyncio
import json
import logging
import sqlite3
from concurrent.futures import ThreadPoolExecutor
from contextlib import asynccontextmanager
from contextvars import ContextVar
from pathlib import Path
from typing import Any, AsyncIterator, Callable, Dict, List, Optional, TypeVar

from duquebot.core.interfaces import IDocumentStore, StorageError
from .schema import SCHEMA, TableSchema, get_table, split_index_key

T = TypeVar('T')


class SqliteDocumentStore(IDocumentStore):
    """
    SQLite 文档存储

    整个进程共享一个连接，由依赖注入容器创建一次并注入各服务。
    """

    def __init__(self, data_dir: str = "data", filename: str = "duquebot.db"):
        """
        初始化 SQLite 存储

        Args:
            data_dir: 数据存储目录
            filename: 数据库文件名
        """
        self.logger = logging.getLogger("duquebot.storage.sqlite")
        self.data_dir = Path(data_dir)
        self.db_path = self.data_dir / filename

        self._conn: Optional[sqlite3.Connection] = None
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="duquebot-sqlite")

        # 数据库连接锁；事务持有期间同一任务内的操作不再重复加锁
        self._db_lock = asyncio.Lock()
        self._in_transaction: ContextVar[bool] = ContextVar(f"sqlite_tx_{id(self)}", default=False)

        self.logger.info(f"SQLite 文档存储初始化 - 路径: {self.db_path}")

    async def initialize(self) -> None:
        """打开连接并创建表结构"""
        self.data_dir.mkdir(parents=True, exist_ok=True)

        def connect_and_create() -> sqlite3.Connection:
            conn = sqlite3.connect(self.db_path, check_same_thread=False, isolation_level=None)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode=WAL")
            for name, table in SCHEMA.items():
                conn.execute(self._create_table_sql(name, table))
                for index_name, index in table.indexes.items():
                    unique = "UNIQUE " if index.unique else ""
                    conn.execute(
                        f"CREATE {unique}INDEX IF NOT EXISTS idx_{name}_{index_name} "
                        f"ON {name}({', '.join(index.columns)})"
                    )
            return conn

        async with self._db_lock:
            self._conn = await self._execute("initialize", "*", connect_and_create)

        self.logger.info("SQLite 表结构初始化完成")

    async def close(self) -> None:
        """关闭连接并释放线程"""
        async with self._db_lock:
            if self._conn is not None:
                conn = self._conn
                self._conn = None
                await self._execute("close", "*", conn.close)
        self._executor.shutdown(wait=False)
        self.logger.info("SQLite 连接已关闭")

    @staticmethod
    def _create_table_sql(name: str, table: TableSchema) -> str:
        columns = ",\n".join(f"    {column} {sql_type}" for column, sql_type in table.columns.items())
        return (
            f"CREATE TABLE IF NOT EXISTS {name} (\n"
            f"    id INTEGER PRIMARY KEY AUTOINCREMENT,\n"
            f"{columns}\n"
            f")"
        )

    # ==================== 执行与事务 ====================

    async def _execute(self, operation: str, table: str, func: Callable[[], T]) -> T:
        """在数据库线程中执行，sqlite3 错误统一包装为 StorageError"""
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(self._executor, func)
        except sqlite3.Error as e:
            self.logger.error(f"SQLite {operation} 失败 - 表: {table}, 错误: {e}")
            raise StorageError(f"SQLite {operation} 失败 ({table}): {e}", operation=operation, table=table) from e

    async def _run(self, operation: str, table: str, func: Callable[[sqlite3.Connection], T]) -> T:
        """执行单个操作；在事务外时加锁"""
        def bound() -> T:
            if self._conn is None:
                raise sqlite3.ProgrammingError("数据库未初始化")
            return func(self._conn)

        if self._in_transaction.get():
            return await self._execute(operation, table, bound)

        async with self._db_lock:
            return await self._execute(operation, table, bound)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """
        开启事务

        嵌套调用会并入外层事务。块内抛出任何异常（包括取消）都会回滚。
        """
        if self._in_transaction.get():
            yield
            return

        async with self._db_lock:
            token = self._in_transaction.set(True)
            try:
                await self._run("begin", "*", lambda conn: conn.execute("BEGIN IMMEDIATE"))
                try:
                    yield
                except BaseException:
                    await self._run("rollback", "*", lambda conn: conn.execute("ROLLBACK"))
                    self.logger.warning("事务已回滚")
                    raise
                await self._run("commit", "*", lambda conn: conn.execute("COMMIT"))
            finally:
                self._in_transaction.reset(token)

    # ==================== 编解码 ====================

    @staticmethod
    def _encode(table: TableSchema, fields: Dict[str, Any]) -> Dict[str, Any]:
        encoded = {}
        for column, value in fields.items():
            if column in table.json_columns and value is not None:
                value = json.dumps(list(value))
            encoded[column] = value
        return encoded

    @staticmethod
    def _decode(table: TableSchema, row: sqlite3.Row) -> Dict[str, Any]:
        doc = dict(row)
        for column in table.json_columns:
            if doc.get(column) is not None:
                doc[column] = json.loads(doc[column])
        return doc

    # ==================== 查询 ====================

    async def get(self, table: str, index: str, **key: Any) -> Optional[Dict[str, Any]]:
        schema = get_table(table)
        filters, remaining = split_index_key(schema, index, key)
        if remaining:
            raise ValueError(f"get 需要完整的索引键: {index}")

        where = " AND ".join(f"{column} = ?" for column in filters)
        params = [self._encode(schema, key)[column] for column in filters]
        sql = f"SELECT * FROM {table} WHERE {where} ORDER BY id ASC LIMIT 1"

        row = await self._run("get", table, lambda conn: conn.execute(sql, params).fetchone())
        return self._decode(schema, row) if row else None

    async def list(
        self,
        table: str,
        index: Optional[str] = None,
        order: str = "asc",
        limit: Optional[int] = None,
        **key: Any
    ) -> List[Dict[str, Any]]:
        schema = get_table(table)
        direction = "DESC" if order == "desc" else "ASC"

        if index is None:
            if key:
                raise ValueError("按键过滤时必须指定索引")
            filters, order_columns = (), ()
        else:
            filters, order_columns = split_index_key(schema, index, key)

        sql = f"SELECT * FROM {table}"
        params: List[Any] = [self._encode(schema, key)[column] for column in filters]
        if filters:
            sql += " WHERE " + " AND ".join(f"{column} = ?" for column in filters)
        sql += " ORDER BY " + ", ".join(f"{column} {direction}" for column in (*order_columns, "id"))
        if limit is not None:
            sql += " LIMIT ?"
            params.append(int(limit))

        rows = await self._run("list", table, lambda conn: conn.execute(sql, params).fetchall())
        return [self._decode(schema, row) for row in rows]

    # ==================== 写入 ====================

    async def insert(self, table: str, fields: Dict[str, Any]) -> int:
        schema = get_table(table)
        schema.check_columns(fields)
        encoded = self._encode(schema, fields)
        columns = list(encoded)
        sql = (
            f"INSERT INTO {table} ({', '.join(columns)}) "
            f"VALUES ({', '.join('?' for _ in columns)})"
        )
        values = [encoded[column] for column in columns]
        return await self._run("insert", table, lambda conn: conn.execute(sql, values).lastrowid)

    async def patch(self, table: str, doc_id: int, fields: Dict[str, Any]) -> None:
        if not fields:
            return
        schema = get_table(table)
        schema.check_columns(fields)
        encoded = self._encode(schema, fields)
        columns = list(encoded)
        sql = f"UPDATE {table} SET {', '.join(f'{column} = ?' for column in columns)} WHERE id = ?"
        values = [encoded[column] for column in columns] + [doc_id]
        await self._run("patch", table, lambda conn: conn.execute(sql, values))

    async def delete(self, table: str, doc_id: int) -> None:
        get_table(table)
        sql = f"DELETE FROM {table} WHERE id = ?"
        await self._run("delete", table, lambda conn: conn.execute(sql, (doc_id,)))
