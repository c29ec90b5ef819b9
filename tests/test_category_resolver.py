import pytest

from autodocs.base import ServiceGroupDescriptor
from autodocs.declarations import ClassDeclaration, Decorator, SourceUnit
from autodocs.deterministic.category_resolver import (
    CategoryResolver,
    build_group_descriptor,
    collect_groups,
    parse_name_list,
)
from autodocs.deterministic.path_utils import UNCATEGORIZED


def _group(name: str, *members: str) -> ServiceGroupDescriptor:
    return ServiceGroupDescriptor(name=name, source_location="src/app.module.ts", member_service_names=members)


class TestGroupNames:
    @pytest.mark.parametrize("name, expected", [
        ("AdminAuthModule", "Admin Auth"),
        ("UserProfileSettingsModule", "User Profile Settings"),
        ("BillingGroup", "Billing"),
        ("APIKeysModule", "API Keys"),
        ("Module", "Module"),
    ])
    def test_format_group_name(self, name, expected):
        assert CategoryResolver.format_group_name(name) == expected


class TestResolveCategory:
    def test_group_based(self):
        resolver = CategoryResolver([_group("AdminAuthModule", "AuthController")])
        assert resolver.resolve_category("AuthController", "src/api/v1/x/auth.controller.ts") == "Admin Auth"

    def test_first_matching_group_wins(self):
        resolver = CategoryResolver([
            _group("UsersModule", "UsersController"),
            _group("LegacyModule", "UsersController"),
        ])
        assert resolver.resolve_category("UsersController", "") == "Users"

    def test_path_fallback(self):
        resolver = CategoryResolver([_group("AdminAuthModule", "AuthController")])
        category = resolver.resolve_category("ProfileController", "src/api/v1/admin/profile/profile.controller.ts")
        assert category == "Admin - Profile"

    def test_uncategorized(self):
        assert CategoryResolver().resolve_category("X", "") == UNCATEGORIZED

    def test_category_mapping_renames(self):
        resolver = CategoryResolver([_group("AdminAuthModule", "AuthController")],
                                    category_mapping={"Admin Auth": "Authentication"})
        assert resolver.resolve_category("AuthController", "") == "Authentication"

    def test_version(self):
        assert CategoryResolver.resolve_version("src/api/V2/users/users.controller.ts") == "v2"
        assert CategoryResolver.resolve_version("src/users/users.controller.ts") is None


class TestGroupDeclarations:
    def test_parse_name_list(self):
        text = "[AdminController, /* legacy */ AuthModule.forRoot({ secret: 'x' }), UsersController]"
        assert parse_name_list(text) == ["AdminController", "AuthModule", "UsersController"]

    def test_parse_empty(self):
        assert parse_name_list(None) == []
        assert parse_name_list("[]") == []

    def test_object_literal_argument(self):
        declaration = ClassDeclaration(name="AdminModule", decorators=[Decorator(
            "Module",
            args=["{ imports: [AuthModule], controllers: [AdminController, StatsController] }"],
        )])
        group = build_group_descriptor(declaration, "src/admin/admin.module.ts")
        assert group.member_service_names == ("AdminController", "StatsController")
        assert group.imported_group_names == ("AuthModule",)

    def test_keyword_arguments(self):
        declaration = ClassDeclaration(name="ShopModule", decorators=[Decorator(
            "Module", kwargs={"controllers": "[CartController]"},
        )])
        assert build_group_descriptor(declaration, "shop.py").member_service_names == ("CartController",)

    def test_collect_groups_skips_services(self):
        unit = SourceUnit(path="src/app.ts", classes=[
            ClassDeclaration(name="AppModule", decorators=[Decorator("Module", kwargs={"controllers": "[AppController]"})]),
            ClassDeclaration(name="AppController", decorators=[Decorator("Controller")]),
        ])
        groups = collect_groups([unit])
        assert [g.name for g in groups] == ["AppModule"]

    def test_from_units(self):
        unit = SourceUnit(path="src/app.ts", classes=[
            ClassDeclaration(name="AdminAuthModule",
                             decorators=[Decorator("Module", kwargs={"controllers": "[AuthController]"})]),
        ])
        resolver = CategoryResolver.from_units([unit])
        assert resolver.resolve_category("AuthController", "src/x.ts") == "Admin Auth"
