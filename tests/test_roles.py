"""Tests for role inference and the role index."""

import pytest

from droidreview_core.config import ReviewConfig
from droidreview_core.models import LogicalRole, SourceUnit
from droidreview_core.roles import RoleIndex, assign_roles, infer_role, is_test_path


class TestIsTestPath:
    """Tests for is_test_path."""

    def test_configured_directories(self, config):
        assert is_test_path("app/src/test/java/FooTest.kt", config)
        assert is_test_path("app/src/androidTest/java/Foo.kt", config)
        assert not is_test_path("app/src/main/java/Foo.kt", config)

    def test_test_like_names(self, config):
        assert is_test_path("lib/FooTest.kt", config)
        assert is_test_path("lib/FooSpec.kt", config)
        assert not is_test_path("lib/Testing.kt", config)

    def test_custom_directories(self):
        config = ReviewConfig(test_directories={"fixtures/"})
        assert is_test_path("module/fixtures/Sample.kt", config)
        assert not is_test_path("app/src/test/Sample.kt", config)


class TestInferRole:
    """Tests for infer_role."""

    @pytest.mark.parametrize("path,text,expected", [
        ("app/src/test/java/Anything.kt", "class Anything", LogicalRole.TEST),
        ("app/src/main/UserViewModel.kt", "", LogicalRole.VIEWMODEL),
        ("app/src/main/UserRepositoryImpl.kt", "", LogicalRole.REPOSITORY),
        ("app/src/main/GetUserUseCase.kt", "", LogicalRole.USECASE),
        ("app/src/main/Home.kt", "class Home : ViewModel() {}", LogicalRole.VIEWMODEL),
        ("app/src/main/Data.kt", "interface UserRepository {}", LogicalRole.REPOSITORY),
        ("app/src/main/MainActivity.kt", "class MainActivity : ComponentActivity() {}", LogicalRole.ENTRY_POINT),
        ("app/src/main/App.kt", "class App : Application() {}", LogicalRole.ENTRY_POINT),
        ("cli/Main.kt", "fun main(args: Array<String>) {}", LogicalRole.ENTRY_POINT),
        ("app/src/main/Card.kt", "@Composable\nfun Card() {}", LogicalRole.UI_COMPONENT),
        ("app/src/main/Detail.kt", "class Detail : Fragment() {}", LogicalRole.UI_COMPONENT),
        ("app/src/main/Util.kt", "fun add(a: Int, b: Int) = a + b", LogicalRole.OTHER),
    ])
    def test_roles(self, config, path, text, expected):
        assert infer_role(SourceUnit(path, text), config) == expected

    def test_markers_in_comments_are_ignored(self, config):
        unit = SourceUnit("app/src/main/Notes.kt", "// class Notes : ViewModel()\nval x = 1")
        assert infer_role(unit, config) == LogicalRole.OTHER

    def test_framework_hint_markers(self):
        text = "fun Application.module() {\n    routing { }\n}\n"
        unit = SourceUnit("server/Module.kt", text)
        assert infer_role(unit, ReviewConfig()) == LogicalRole.OTHER
        assert infer_role(unit, ReviewConfig(framework_hints={"ktor"})) == LogicalRole.ENTRY_POINT

    def test_malformed_unit_is_other(self, config):
        unit = SourceUnit("app/src/main/Broken.kt", b"\xff\xfe")
        assert infer_role(unit, config) == LogicalRole.OTHER


class TestAssignRoles:
    """Tests for assign_roles."""

    def test_keeps_explicit_roles(self, config):
        units = assign_roles([
            SourceUnit("a/UserViewModel.kt", "", LogicalRole.ENTRY_POINT),
            SourceUnit("a/UserViewModel2.kt", "class X : ViewModel()"),
        ], config)
        assert [u.role for u in units] == [LogicalRole.ENTRY_POINT, LogicalRole.VIEWMODEL]

    def test_returns_new_units(self, config):
        original = SourceUnit("a/Foo.kt", "val a = 1")
        (assigned,) = assign_roles([original], config)
        assert original.role is None
        assert assigned.role == LogicalRole.OTHER


class TestRoleIndex:
    """Tests for RoleIndex."""

    def test_lookup_by_role(self, config):
        units = assign_roles([
            SourceUnit("a/UserViewModel.kt", "class UserViewModel : ViewModel()"),
            SourceUnit("a/UserRepository.kt", "class UserRepository"),
        ], config)
        index = RoleIndex(units)
        assert [u.path for u in index[LogicalRole.VIEWMODEL]] == ["a/UserViewModel.kt"]
        assert index[LogicalRole.TEST] == ()
        assert LogicalRole.REPOSITORY in index
        assert LogicalRole.TEST not in index
        assert len(index) == 2

    def test_find_by_stem_and_declared_name(self, config):
        units = assign_roles([
            SourceUnit("a/src/test/Tests.kt", "class ProfileViewModelTest {\n}\n"),
        ], config)
        index = RoleIndex(units)
        assert index.find("Tests").path == "a/src/test/Tests.kt"
        assert index.find("ProfileViewModelTest", LogicalRole.TEST) is not None
        assert index.find("ProfileViewModelTest", LogicalRole.VIEWMODEL) is None
        assert index.find("Missing") is None
