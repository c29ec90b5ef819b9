import ast
import textwrap

import pytest

from autodocs.base import HttpMethod, ParamLocation, TypeKind
from autodocs.config import AutoDocsConfig
from autodocs.frontends import PythonSourceParser
from autodocs.frontends.python_ast import annotation_text, to_decorator
from autodocs.openapi import synthesize
from autodocs.scanner import ServiceScanner

USERS_SOURCE = textwrap.dedent('''
    from enum import Enum
    from typing import Annotated, List, Literal, Optional

    from pydantic import BaseModel, Field

    from app.decorators import Body, Controller, Get, IsEmail, MinLength, Module, Param, Post, Public, Query, UseGuards

    Email = str


    class Role(str, Enum):
        ADMIN = "admin"
        USER = "user"


    class CreateUserDto(BaseModel):
        email: Annotated[Email, IsEmail()]
        """Login address."""
        name: str = Field(..., min_length=2, max_length=50)
        role: Role = Role.USER
        nickname: Optional[str] = None


    class UserDto(BaseModel):
        id: int
        email: Email
        manager: Optional["UserDto"] = None
        sort: Literal["asc", "desc"] = "asc"


    @Controller("users")
    @UseGuards(JwtGuard)
    class UsersController:
        """User management."""

        @Get()
        async def list(self, page: int = Query("page")) -> List[UserDto]:
            """List users."""

        @Get(":id")
        @Public()
        def find_one(self, id: str = Param("id")) -> Optional[UserDto]:
            ...

        @Post()
        def create(self, dto: CreateUserDto = Body()) -> UserDto:
            ...

        def _helper(self):
            ...


    @Module(controllers=[UsersController])
    class AdminUsersModule:
        pass
''')


@pytest.fixture
def unit():
    return PythonSourceParser().parse_source(USERS_SOURCE, "app/v1/users/users_controller.py")


class TestParseSource:
    def test_declarations(self, unit):
        assert [c.name for c in unit.classes] == ["CreateUserDto", "UserDto", "UsersController", "AdminUsersModule"]
        assert [e.name for e in unit.enums] == ["Role"]
        assert unit.enums[0].values == ["admin", "user"]
        assert [a.name for a in unit.aliases] == ["Email"]

    def test_properties(self, unit):
        dto = unit.classes[0]
        props = {p.name: p for p in dto.properties}
        assert props["email"].type.name == "Email"
        assert [d.name for d in props["email"].decorators] == ["IsEmail"]
        assert props["email"].doc == "Login address."
        assert [(d.name, d.args) for d in props["name"].decorators] == [("MinLength", ["2"]), ("MaxLength", ["50"])]
        assert not props["name"].has_default
        assert props["role"].has_default
        assert props["nickname"].optional

    def test_handlers(self, unit):
        controller = unit.classes[2]
        assert controller.doc == "User management."
        assert [d.name for d in controller.decorators] == ["Controller", "UseGuards"]
        assert controller.decorators[0].args == ["users"]

        handlers = {m.name: m for m in controller.methods}
        assert handlers["list"].return_type.display == "List[UserDto]"
        assert [p.name for p in handlers["list"].parameters] == ["page"]
        assert handlers["list"].parameters[0].decorators[0].name == "Query"
        assert handlers["create"].parameters[0].decorators[0].name == "Body"


class TestEndToEnd:
    def test_scan(self, unit):
        services = ServiceScanner().scan([unit])
        assert len(services) == 1
        service = services[0]
        assert service.category == "Admin Users"
        assert service.version == "v1"
        assert service.guards == ("JwtGuard",)

        routes = {r.name: r for r in service.routes}
        assert set(routes) == {"list", "find_one", "create"}
        assert routes["list"].response_type.is_array
        assert routes["list"].parameters[0].location == ParamLocation.QUERY
        assert routes["find_one"].is_public
        assert routes["find_one"].full_path == "users/:id"
        assert routes["create"].http_method == HttpMethod.POST

        body = {p.name: p for p in routes["create"].request_body.properties}
        assert body["email"].type.format == "email"
        assert body["role"].type.kind == TypeKind.ENUM

    def test_self_reference_through_forward_ref(self, unit):
        services = ServiceScanner().scan([unit])
        create = next(r for r in services[0].routes if r.name == "create")
        manager = next(p for p in create.response_type.properties if p.name == "manager")
        assert not manager.required
        assert manager.type.kind == TypeKind.REFERENCE
        assert manager.type.name == "UserDto"

    def test_document(self, unit):
        config = AutoDocsConfig(title="Users", version="1.0", versioning={"enabled": True})
        doc = synthesize(ServiceScanner(config).scan([unit]), config)
        assert set(doc["paths"]) == {"api/v1/users", "api/v1/users/{id}"}
        schema = doc["components"]["schemas"]["CreateUserDto"]
        assert schema["required"] == ["email", "name"]
        assert schema["properties"]["name"]["minLength"] == 2
        assert schema["properties"]["role"]["enum"] == ["admin", "user"]
        assert doc["paths"]["api/v1/users"]["post"]["responses"]["201"]


class TestFiles:
    def test_parse_tree(self, tmp_path):
        (tmp_path / "v2" / "orders").mkdir(parents=True)
        (tmp_path / "v2" / "orders" / "orders.py").write_text(USERS_SOURCE)
        (tmp_path / "broken.py").write_text("class :\n")
        (tmp_path / "node_modules").mkdir()
        (tmp_path / "node_modules" / "x.py").write_text(USERS_SOURCE)
        (tmp_path / "tests").mkdir()
        (tmp_path / "tests" / "test_orders.py").write_text(USERS_SOURCE)

        parser = PythonSourceParser(exclude=["**/tests/**"])
        units = parser.parse_tree(tmp_path)
        assert [u.path for u in units] == ["v2/orders/orders.py"]
        assert parser.stats["files_errored"] == 1

    def test_is_excluded(self):
        parser = PythonSourceParser(exclude=["**/test_*.py", "migrations/*"])
        assert parser.is_excluded("test_app.py")
        assert parser.is_excluded("app/test_app.py")
        assert parser.is_excluded("migrations/0001.py")
        assert not parser.is_excluded("app/users.py")


class TestHelpers:
    def test_annotation_text(self):
        node = ast.parse('x: Literal["a", "b"] | None', mode="exec").body[0].annotation
        assert annotation_text(node) == "Literal['a', 'b'] | None"

    def test_to_decorator_expands_choices(self):
        node = ast.parse('IsIn(["asc", "desc"])', mode="eval").body
        decorator = to_decorator(node)
        assert decorator.name == "IsIn"
        assert decorator.args == ["asc", "desc"]
