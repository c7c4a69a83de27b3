from __future__ import annotations

from dbclient.domain.models import ResultMetadata
from dbclient.infra.db.connection import ConnectionHandle


class MetadataUseCase:
    """
    Назначение/ответственность:
        Метаданные БД (список таблиц) и метаданные результата (колонки таблицы).
    """

    def __init__(self, session: ConnectionHandle):
        self.session = session

    def tables(self, pattern: str = "%") -> list[str]:
        return self.session.list_tables(pattern)

    def columns(self, table: str) -> ResultMetadata:
        # имя таблицы нельзя привязать параметром, поэтому оно сверяется со списком таблиц
        if table not in self.session.list_tables():
            raise ValueError(f"Unknown table: {table}")
        quoted = table.replace('"', '""')
        query = self.session.prepare(f'SELECT * FROM "{quoted}"')
        with query.execute_query(self.session) as cursor:
            return cursor.metadata()
