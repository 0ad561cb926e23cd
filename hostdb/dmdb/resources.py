"""DMDB server and database resources.

DM8 has two sets of credentials: the login used by applications
(``Username``/``Password``) and the DBA password shared by ``SYSDBA`` and
``SYSAUDITOR``.  Both appear in the connection string::

    Host={host};Port={port};Username={user};Password={password};DBAPassword={dba};
    Host={host};Port={port};Username={user};Password={password};Database={db};DBAPassword={dba};
"""

from __future__ import annotations

from hostdb.model.expressions import ExpressionPart
from hostdb.model.parameters import ParameterResource
from hostdb.servers import DatabaseResource, DatabaseServerResource


class DmdbServerResource(DatabaseServerResource):
    DEFAULT_USER_NAME = "SYSDBA"
    DEFAULT_DATABASE_NAME = "testdb"

    def __init__(
        self,
        name: str,
        user_name: ParameterResource | None,
        password: ParameterResource,
        dba_password: ParameterResource,
    ) -> None:
        if dba_password is None:
            raise TypeError("dba_password must not be None")
        super().__init__(name, user_name, password)
        self.dba_password_parameter = dba_password

    def login_parts(self) -> list[ExpressionPart]:
        return super().connection_string_parts()

    def connection_string_parts(self) -> list[ExpressionPart]:
        return [*self.login_parts(), ";DBAPassword=", self.dba_password_parameter, ";"]


class DmdbDatabaseResource(DatabaseResource[DmdbServerResource]):
    def connection_string_parts(self) -> list[ExpressionPart]:
        return [
            *self.parent.login_parts(),
            ";Database=", self.database_name,
            ";DBAPassword=", self.parent.dba_password_parameter, ";",
        ]  # fmt: skip
