"""Tests for the built-in Kotlin/Android rules."""

import pytest

from droidreview_core.config import ReviewConfig
from droidreview_core.models import SourceUnit
from droidreview_core.roles import RoleIndex, assign_roles

MAIN = "app/src/main/java/com/example/"
TEST = "app/src/test/java/com/example/"


@pytest.fixture
def hits(catalog):
    """Evaluate one rule on the first of the given (path, text) units."""

    def evaluate(rule_id, path, text, *others):
        units = [SourceUnit(path, text)]
        units += [SourceUnit(p, t) for p, t in others]
        units = assign_roles(units, ReviewConfig())
        return catalog.get_rule(rule_id).evaluate(units[0], RoleIndex(units))

    return evaluate


class TestArchitectureRules:
    """Tests for layering and state exposure rules."""

    def test_viewmodel_data_source(self, hits):
        text = (
            "class UserViewModel(\n"
            "    private val userDao: UserDao,\n"
            ") : ViewModel()\n"
        )
        matches = hits("arch-viewmodel-data-source", MAIN + "UserViewModel.kt", text)
        assert [(m.line_start, m.captured_text) for m in matches] == [(2, "UserDao")]

    def test_viewmodel_with_repository_is_fine(self, hits):
        text = "class UserViewModel(private val repo: UserRepository) : ViewModel()\n"
        assert hits("arch-viewmodel-data-source", MAIN + "UserViewModel.kt", text) == []

    def test_data_source_outside_viewmodel_is_fine(self, hits):
        text = "class UserRepository(private val userDao: UserDao)\n"
        assert hits("arch-viewmodel-data-source", MAIN + "UserRepository.kt", text) == []

    def test_ui_repository_access(self, hits):
        text = (
            "import com.example.data.UserRepository\n"
            "@Composable\n"
            "fun ProfileScreen(repository: UserRepository) {\n"
            "    val user = repository.load()\n"
            "}\n"
        )
        matches = hits("arch-ui-repository-access", MAIN + "ProfileScreen.kt", text)
        assert [m.line_start for m in matches] == [3]

    def test_exposed_mutable_state(self, hits):
        text = (
            "class CartViewModel : ViewModel() {\n"
            "    val items = MutableStateFlow(emptyList<String>())\n"
            "    private val _total = MutableStateFlow(0)\n"
            "}\n"
        )
        matches = hits("arch-exposed-mutable-state", MAIN + "CartViewModel.kt", text)
        assert [m.line_start for m in matches] == [2]

    def test_sealed_ui_state(self, hits):
        text = "sealed interface LoginUiState {\n    object Loading : LoginUiState\n}\n"
        matches = hits("arch-sealed-ui-state", MAIN + "LoginUiState.kt", text)
        assert [m.captured_text for m in matches] == ["LoginUiState"]

    def test_encapsulated_state_flow(self, hits):
        text = (
            "class CounterViewModel : ViewModel() {\n"
            "    private val _state = MutableStateFlow(0)\n"
            "    val state: StateFlow<Int> = _state.asStateFlow()\n"
            "}\n"
        )
        matches = hits("arch-encapsulated-state-flow", MAIN + "CounterViewModel.kt", text)
        assert [m.captured_text for m in matches] == ["_state"]


class TestKotlinIdiomRules:
    """Tests for null-safety and idiom rules."""

    def test_non_null_assertion(self, hits):
        text = 'val name = user!!.name\n// legacy!!\nval s = "wow!!"\n'
        matches = hits("kotlin-non-null-assertion", MAIN + "Names.kt", text)
        assert [(m.line_start, m.captured_text) for m in matches] == [(1, "user!!")]

    def test_non_null_assertion_after_call(self, hits):
        matches = hits("kotlin-non-null-assertion", MAIN + "Names.kt", "val a = find()!!\n")
        assert [m.captured_text for m in matches] == [")!!"]

    def test_unsafe_cast(self, hits):
        text = (
            "import com.example.Foo as Bar\n"
            "val activity = context as Activity\n"
            "val maybe = context as? Activity\n"
        )
        matches = hits("kotlin-unsafe-cast", MAIN + "Casts.kt", text)
        assert [(m.line_start, m.captured_text) for m in matches] == [(2, "as Activity")]

    def test_java_null_check(self, hits):
        text = "if (user != null) {\n    show(user)\n}\n"
        matches = hits("kotlin-java-null-check", MAIN + "Checks.kt", text)
        assert [m.captured_text for m in matches] == ["if (user != null)"]


class TestConcurrencyRules:
    """Tests for coroutine and threading rules."""

    def test_global_scope(self, hits):
        text = "fun sync() {\n    GlobalScope.launch { upload() }\n}\n"
        matches = hits("concurrency-global-scope", MAIN + "Sync.kt", text)
        assert [m.line_start for m in matches] == [2]

    def test_run_blocking(self, hits):
        text = "fun load() = runBlocking {\n    fetch()\n}\n"
        matches = hits("concurrency-run-blocking", MAIN + "Loader.kt", text)
        assert len(matches) == 1

    def test_thread_sleep(self, hits):
        matches = hits("concurrency-thread-sleep", MAIN + "Poller.kt", "Thread.sleep(1000)\n")
        assert len(matches) == 1

    def test_hardcoded_dispatcher_in_repository(self, hits):
        text = (
            "class UserRepository(\n"
            "    private val io: CoroutineDispatcher = Dispatchers.IO,\n"
            ") {\n"
            "    suspend fun load() = withContext(Dispatchers.IO) { api.get() }\n"
            "}\n"
        )
        matches = hits("concurrency-hardcoded-dispatcher", MAIN + "UserRepository.kt", text)
        assert [m.line_start for m in matches] == [4]

    def test_hardcoded_dispatcher_ignored_outside_state_holders(self, hits):
        text = "fun main() {\n    launch(Dispatchers.IO) { }\n}\n"
        assert hits("concurrency-hardcoded-dispatcher", MAIN + "App.kt", text) == []

    def test_injected_dispatcher(self, hits):
        text = "class UserRepository(private val io: CoroutineDispatcher)\n"
        matches = hits("concurrency-injected-dispatcher", MAIN + "UserRepository.kt", text)
        assert [m.captured_text for m in matches] == ["io: CoroutineDispatcher"]


class TestLifecycleRules:
    """Tests for leak and lifecycle rules."""

    def test_context_in_viewmodel(self, hits):
        text = (
            "class LeakyViewModel(\n"
            "    private val context: Context,\n"
            ") : ViewModel() {\n"
            "    fun load() = Unit\n"
            "}\n"
        )
        matches = hits("lifecycle-context-leak", MAIN + "LeakyViewModel.kt", text)
        assert [(m.line_start, m.captured_text) for m in matches] == [(2, "val context: Context")]

    def test_activity_in_companion_object(self, hits, sources):
        matches = hits("lifecycle-context-leak", MAIN + "MainActivity.kt", sources["leaky_activity"])
        assert [m.line_start for m in matches] == [5]

    def test_application_context_is_fine(self, hits):
        text = "class AppViewModel(private val app: Application) : AndroidViewModel(app)\n"
        assert hits("lifecycle-context-leak", MAIN + "AppViewModel.kt", text) == []

    def test_context_in_preceding_class_is_not_attributed_to_viewmodel(self, hits):
        text = (
            "class Helper(val context: Context)\n"
            "\n"
            "class HomeViewModel : ViewModel() {\n"
            "    fun load() = Unit\n"
            "}\n"
        )
        assert hits("lifecycle-context-leak", MAIN + "HomeViewModel.kt", text) == []

    def test_context_in_viewmodel_after_another_class(self, hits):
        text = (
            "class Helper(val name: String)\n"
            "\n"
            "class HomeViewModel(private val context: Context) : ViewModel()\n"
        )
        matches = hits("lifecycle-context-leak", MAIN + "HomeViewModel.kt", text)
        assert [m.line_start for m in matches] == [3]

    def test_collect_without_repeat(self, hits):
        text = (
            "class HomeFragment : Fragment() {\n"
            "    override fun onStart() {\n"
            "        lifecycleScope.launch {\n"
            "            viewModel.state.collect { render(it) }\n"
            "        }\n"
            "    }\n"
            "}\n"
        )
        matches = hits("lifecycle-collect-without-repeat", MAIN + "HomeFragment.kt", text)
        assert [(m.line_start, m.line_end) for m in matches] == [(3, 5)]

    def test_collect_with_repeat_on_lifecycle(self, hits):
        text = (
            "lifecycleScope.launch {\n"
            "    repeatOnLifecycle(Lifecycle.State.STARTED) {\n"
            "        viewModel.state.collect { render(it) }\n"
            "    }\n"
            "}\n"
        )
        assert hits("lifecycle-collect-without-repeat", MAIN + "HomeFragment.kt", text) == []
        assert len(hits("lifecycle-repeat-on-lifecycle", MAIN + "HomeFragment.kt", text)) == 1

    def test_unregistered_receiver(self, hits):
        text = "fun start() {\n    registerReceiver(receiver, filter)\n}\n"
        assert len(hits("lifecycle-unregistered-receiver", MAIN + "Tracker.kt", text)) == 1

        paired = text + "fun stop() {\n    unregisterReceiver(receiver)\n}\n"
        assert hits("lifecycle-unregistered-receiver", MAIN + "Tracker.kt", paired) == []


class TestUiRules:
    """Tests for Compose rules."""

    def test_state_without_remember(self, hits):
        text = (
            "@Composable\n"
            "fun Counter() {\n"
            "    var count by mutableStateOf(0)\n"
            "    var saved by remember { mutableStateOf(1) }\n"
            "}\n"
        )
        matches = hits("ui-state-without-remember", MAIN + "Counter.kt", text)
        assert [m.line_start for m in matches] == [3]

    def test_state_outside_compose_is_fine(self, hits):
        text = "class Holder {\n    var count by mutableStateOf(0)\n}\n"
        assert hits("ui-state-without-remember", MAIN + "Holder.kt", text) == []

    def test_collect_as_state(self, hits):
        text = "@Composable\nfun Screen(vm: ScreenViewModel) {\n    val s by vm.state.collectAsState()\n}\n"
        assert len(hits("ui-collect-as-state", MAIN + "Screen.kt", text)) == 1

    def test_constant_effect_key(self, hits):
        text = (
            "@Composable\n"
            "fun Screen(id: String) {\n"
            "    LaunchedEffect(Unit) { load(id) }\n"
            "    LaunchedEffect(id) { load(id) }\n"
            "}\n"
        )
        matches = hits("ui-constant-effect-key", MAIN + "Screen.kt", text)
        assert [m.line_start for m in matches] == [3]


class TestTestingRules:
    """Tests for test coverage rules."""

    def test_missing_viewmodel_test(self, hits):
        text = "class ProfileViewModel : ViewModel()\n"
        matches = hits("testing-missing-viewmodel-test", MAIN + "ProfileViewModel.kt", text)
        assert [m.captured_text for m in matches] == ["class ProfileViewModel"]

    def test_viewmodel_with_test(self, hits):
        text = "class ProfileViewModel : ViewModel()\n"
        test = (TEST + "ProfileViewModelTest.kt", "class ProfileViewModelTest {\n}\n")
        assert hits("testing-missing-viewmodel-test", MAIN + "ProfileViewModel.kt", text, test) == []

    def test_no_assertions(self, hits):
        text = (
            "class FooTest {\n"
            "    @Test\n"
            "    fun loads() {\n"
            "        Foo().load()\n"
            "    }\n"
            "\n"
            "    @Test\n"
            "    fun counts() {\n"
            "        assertEquals(1, Foo().count())\n"
            "    }\n"
            "}\n"
        )
        matches = hits("testing-no-assertions", TEST + "FooTest.kt", text)
        assert [(m.line_start, m.line_end) for m in matches] == [(2, 5)]

    def test_no_assertions_only_in_tests(self, hits):
        text = "@Test\nfun loads() {\n    Foo().load()\n}\n"
        assert hits("testing-no-assertions", MAIN + "Foo.kt", text) == []


class TestSecurityRules:
    """Tests for security rules."""

    def test_hardcoded_secret(self, hits):
        text = (
            'const val API_KEY = "sk_live_123"\n'
            "val apiKey = BuildConfig.API_KEY\n"
            'val password: String = ""\n'
        )
        matches = hits("security-hardcoded-secret", MAIN + "Keys.kt", text)
        assert [m.line_start for m in matches] == [1]

    def test_webview_javascript(self, hits):
        text = "webView.settings.javaScriptEnabled = true\nother.settings.javaScriptEnabled = false\n"
        matches = hits("security-webview-javascript", MAIN + "Browser.kt", text)
        assert [m.line_start for m in matches] == [1]

    def test_logged_credential(self, hits):
        text = (
            'Log.d(TAG, "login " + password)\n'
            'Log.d(TAG, "password accepted")\n'
        )
        matches = hits("security-logged-credential", MAIN + "Login.kt", text)
        assert [m.line_start for m in matches] == [1]

    def test_world_readable_mode(self, hits):
        text = 'openFileOutput("prefs", Context.MODE_WORLD_READABLE)\n'
        matches = hits("security-world-readable-mode", MAIN + "Prefs.kt", text)
        assert [m.captured_text for m in matches] == ["MODE_WORLD_READABLE"]
