"""Built-in rules for Kotlin/Android code review.

Rules are listed in catalog order, grouped by category. Each one is a plain
RuleBuilder chain; adding a check means appending an entry here.
"""

from droidreview_core.models import LogicalRole, RuleCategory
from droidreview_core.rules.builder import RuleBuilder
from droidreview_core.rules.matchers import (
    absent_in_block,
    absent_in_unit,
    any_of,
    declared_in_block,
    line_pattern,
    missing_companion,
    outside_block,
    pattern,
    when_present,
)
from droidreview_core.rules.models import Rule
from droidreview_core.severity import Severity

# Property or parameter holding a short-lived Android object
CONTEXT_DECLARATION = (
    r"\bva[lr]\s+\w+\s*:\s*"
    r"(?:Context|Activity|Fragment|View|[A-Z]\w*(?:Activity|Fragment|View))\b"
)

VIEWMODEL_CLASS = r"\bclass\s+\w+(?:(?!\bclass\b)[^{])*?:\s*(?:[\w.]+\.)?(?:Android)?ViewModel\s*\("
STATIC_HOLDER = r"\b(?:companion\s+object|object\s+[A-Z]\w*)\b"

ASSERTION = (
    r"\bassert\w*\s*[({]"
    r"|\b(?:co)?[vV]erify\w*\s*[({]"
    r"|\bexpect\w*\s*[({]"
    r"|\bshould\w*\b"
    r"|\bawaitItem\s*\("
    r"|\b(?:check|require|fail)\s*\("
    r"|\.test\s*\{"
)

STATE_HOLDER_ROLES = (LogicalRole.VIEWMODEL, LogicalRole.REPOSITORY, LogicalRole.USECASE)
UI_ROLES = (LogicalRole.UI_COMPONENT, LogicalRole.ENTRY_POINT)


def _architecture_rules() -> list[Rule]:
    return [
        RuleBuilder()
        .id("arch-viewmodel-data-source")
        .title("ViewModel talks to a data source directly")
        .category(RuleCategory.ARCHITECTURE)
        .severity(Severity.MAJOR)
        .pattern(r":\s*([A-Z]\w*(?:Dao|ApiService|Api|Database))\b", group=1)
        .for_roles(LogicalRole.VIEWMODEL)
        .rationale(
            "The ViewModel depends on `{captured}` directly and skips the repository "
            "layer, so storage and network details leak into presentation code."
        )
        .fix("Wrap `{captured}` in a repository or use case and inject that instead.")
        .with_tags("layering")
        .build(),

        RuleBuilder()
        .id("arch-ui-repository-access")
        .title("UI component reaches into a repository")
        .category(RuleCategory.ARCHITECTURE)
        .severity(Severity.MAJOR)
        .matcher(line_pattern(r"\b[A-Z]\w*Repository\b", unless=r"^\s*(?:import|package)\b"))
        .for_roles(*UI_ROLES)
        .rationale(
            "`{captured}` is used from a UI component. Screens should only observe "
            "state exposed by a ViewModel."
        )
        .fix("Move the `{captured}` call into the screen's ViewModel and expose the result as state.")
        .with_tags("layering")
        .build(),

        RuleBuilder()
        .id("arch-exposed-mutable-state")
        .title("Mutable state exposed publicly")
        .category(RuleCategory.ARCHITECTURE)
        .severity(Severity.MAJOR)
        .matcher(line_pattern(
            r"^\s*(?:(?:public|internal|protected|override|open|final)\s+)*"
            r"va[lr]\s+\w+\b[^\n]*\bMutable(?:StateFlow|SharedFlow|LiveData)\b"
        ))
        .for_roles(LogicalRole.VIEWMODEL)
        .rationale(
            "`{captured}` lets any observer push values into the ViewModel's state, "
            "breaking unidirectional data flow."
        )
        .fix(
            "Keep a private `_state` MutableStateFlow and expose `val state = _state.asStateFlow()`."
        )
        .with_tags("state")
        .build(),

        RuleBuilder()
        .id("arch-sealed-ui-state")
        .title("UI state modelled as a sealed hierarchy")
        .category(RuleCategory.ARCHITECTURE)
        .positive()
        .pattern(r"\bsealed\s+(?:class|interface)\s+(\w*(?:UiState|State|Event|Effect))\b", group=1)
        .rationale("`{captured}` makes every screen state explicit and exhaustively handled.")
        .with_tags("state")
        .build(),

        RuleBuilder()
        .id("arch-encapsulated-state-flow")
        .title("Backing MutableStateFlow kept private")
        .category(RuleCategory.ARCHITECTURE)
        .positive()
        .matcher(when_present(
            r"\.as(?:StateFlow|SharedFlow)\s*\(",
            pattern(
                r"\bprivate\s+val\s+(_\w+)\s*(?::[^=\n]*)?=\s*Mutable(?:StateFlow|SharedFlow)\b",
                group=1,
            ),
        ))
        .rationale("`{captured}` is private and exposed read-only, so only the owner mutates state.")
        .with_tags("state")
        .build(),
    ]


def _kotlin_rules() -> list[Rule]:
    return [
        RuleBuilder()
        .id("kotlin-non-null-assertion")
        .title("Unsafe non-null assertion")
        .category(RuleCategory.KOTLIN_IDIOM)
        .severity(Severity.MAJOR)
        .pattern(r"(?:\w+|[)\]])!!")
        .rationale(
            "`{captured}` throws a NullPointerException when the value is null, "
            "giving up the compiler's null-safety guarantees."
        )
        .fix("Handle the null case explicitly: `?.let { }`, `?: return`, or `requireNotNull(...)` with a message.")
        .with_tags("null-safety")
        .build(),

        RuleBuilder()
        .id("kotlin-unsafe-cast")
        .title("Unchecked cast")
        .category(RuleCategory.KOTLIN_IDIOM)
        .severity(Severity.MINOR)
        .matcher(line_pattern(r"\bas\s+[A-Z][\w.]*\b(?:<[^>\n]*>)?(?!\?)", unless=r"^\s*import\b"))
        .rationale("`{captured}` throws ClassCastException at runtime when the type does not match.")
        .fix("Use a safe cast (`as?`) or a `when (x) { is T -> ... }` check.")
        .with_tags("null-safety")
        .build(),

        RuleBuilder()
        .id("kotlin-java-null-check")
        .title("Java-style null check")
        .category(RuleCategory.KOTLIN_IDIOM)
        .severity(Severity.MINOR)
        .pattern(r"\bif\s*\(\s*\w+\s*!=\s*null\s*\)")
        .rationale("`{captured}` is verbose and does not smart-cast mutable properties.")
        .fix("Replace `{captured}` with a safe call such as `value?.let { ... }`.")
        .with_tags("style")
        .build(),
    ]


def _concurrency_rules() -> list[Rule]:
    return [
        RuleBuilder()
        .id("concurrency-global-scope")
        .title("Coroutine launched in GlobalScope")
        .category(RuleCategory.CONCURRENCY)
        .severity(Severity.MAJOR)
        .pattern(r"\bGlobalScope\s*\.\s*(?:launch|async)\b")
        .rationale(
            "`{captured}` starts work that no lifecycle owns; it is never cancelled "
            "and leaks whatever it captures."
        )
        .fix("Launch from a lifecycle-bound scope such as `viewModelScope` or an injected CoroutineScope.")
        .with_tags("coroutines")
        .build(),

        RuleBuilder()
        .id("concurrency-run-blocking")
        .title("runBlocking in production code")
        .category(RuleCategory.CONCURRENCY)
        .severity(Severity.MAJOR)
        .pattern(r"\brunBlocking\b\s*(?:<[^>\n]*>)?\s*[({]")
        .rationale("`{captured}` blocks the calling thread; on the main thread this freezes the UI.")
        .fix("Make the caller a suspend function, or use `runTest` in tests.")
        .with_tags("coroutines")
        .build(),

        RuleBuilder()
        .id("concurrency-thread-sleep")
        .title("Thread.sleep blocks a thread")
        .category(RuleCategory.CONCURRENCY)
        .severity(Severity.MINOR)
        .pattern(r"\bThread\s*\.\s*sleep\s*\(")
        .rationale("`{captured}` parks a whole thread instead of suspending.")
        .fix("Use `delay(...)` inside a coroutine.")
        .with_tags("coroutines")
        .build(),

        RuleBuilder()
        .id("concurrency-hardcoded-dispatcher")
        .title("Hardcoded coroutine dispatcher")
        .category(RuleCategory.CONCURRENCY)
        .severity(Severity.MINOR)
        .matcher(line_pattern(
            r"\bDispatchers\s*\.\s*(?:IO|Default|Unconfined)\b",
            unless=r"\bCoroutineDispatcher\b",
        ))
        .for_roles(*STATE_HOLDER_ROLES)
        .rationale("`{captured}` cannot be replaced in tests, which makes timing nondeterministic.")
        .fix("Inject a `CoroutineDispatcher` (defaulting to `{captured}`) through the constructor.")
        .with_tags("coroutines", "testability")
        .build(),

        RuleBuilder()
        .id("concurrency-injected-dispatcher")
        .title("Dispatcher injected through the constructor")
        .category(RuleCategory.CONCURRENCY)
        .positive()
        .pattern(r"\b\w+\s*:\s*CoroutineDispatcher\b")
        .rationale("`{captured}` lets tests substitute a test dispatcher.")
        .with_tags("coroutines", "testability")
        .build(),
    ]


def _lifecycle_rules() -> list[Rule]:
    return [
        RuleBuilder()
        .id("lifecycle-context-leak")
        .title("Long-lived component retains a short-lived reference")
        .category(RuleCategory.LIFECYCLE)
        .severity(Severity.CRITICAL)
        .matcher(any_of(
            declared_in_block(VIEWMODEL_CLASS, CONTEXT_DECLARATION),
            declared_in_block(STATIC_HOLDER, CONTEXT_DECLARATION),
        ))
        .rationale(
            "`{captured}` outlives the Activity or View it points to. After a "
            "configuration change the whole view hierarchy stays in memory."
        )
        .fix(
            "Drop `{captured}`; pass the application context, a WeakReference, or move "
            "the work that needs it back into the UI layer."
        )
        .with_tags("memory-leak")
        .build(),

        RuleBuilder()
        .id("lifecycle-collect-without-repeat")
        .title("Flow collected without lifecycle awareness")
        .category(RuleCategory.LIFECYCLE)
        .severity(Severity.MAJOR)
        .matcher(absent_in_block(
            r"\blifecycleScope\s*\.\s*launch(?:WhenCreated|WhenStarted|WhenResumed)?\b",
            r"\brepeatOnLifecycle\b|\bflowWithLifecycle\b",
            only_if=r"\.collect(?:Latest)?\s*[({]",
        ))
        .rationale(
            "Collecting inside `{captured}` keeps the flow active while the screen is "
            "in the background, wasting resources and delivering stale updates."
        )
        .fix("Wrap the collection in `repeatOnLifecycle(Lifecycle.State.STARTED) { ... }`.")
        .with_tags("flows")
        .build(),

        RuleBuilder()
        .id("lifecycle-unregistered-receiver")
        .title("Receiver registered but never unregistered")
        .category(RuleCategory.LIFECYCLE)
        .severity(Severity.MAJOR)
        .matcher(absent_in_unit(r"\bregisterReceiver\s*\(", r"\bunregisterReceiver\s*\("))
        .rationale("`{captured}` has no matching unregisterReceiver call, so the receiver leaks.")
        .fix("Call `unregisterReceiver(...)` in the lifecycle callback matching the registration.")
        .with_tags("memory-leak")
        .build(),

        RuleBuilder()
        .id("lifecycle-repeat-on-lifecycle")
        .title("Collection scoped with repeatOnLifecycle")
        .category(RuleCategory.LIFECYCLE)
        .positive()
        .pattern(r"\brepeatOnLifecycle\s*\(")
        .rationale("`{captured}` stops collection when the screen is not visible.")
        .with_tags("flows")
        .build(),
    ]


def _ui_rules() -> list[Rule]:
    return [
        RuleBuilder()
        .id("ui-state-without-remember")
        .title("Compose state created without remember")
        .category(RuleCategory.UI_FRAMEWORK)
        .severity(Severity.MAJOR)
        .matcher(when_present(
            r"@Composable\b",
            outside_block(r"\bmutableStateOf\s*\(", r"\bremember(?:Saveable)?\b[^{\n]*\{"),
        ))
        .rationale(
            "`{captured}` outside `remember` builds a fresh state object on every "
            "recomposition, so the value resets each time."
        )
        .fix("Wrap the state in remember: `var value by remember { mutableStateOf(initial) }`.")
        .with_tags("compose", "recomposition")
        .build(),

        RuleBuilder()
        .id("ui-collect-as-state")
        .title("collectAsState ignores the lifecycle")
        .category(RuleCategory.UI_FRAMEWORK)
        .severity(Severity.MINOR)
        .pattern(r"\.collectAsState\s*\(")
        .rationale("`{captured}` keeps collecting while the app is in the background.")
        .fix("Use `collectAsStateWithLifecycle()` from lifecycle-runtime-compose.")
        .with_tags("compose", "flows")
        .build(),

        RuleBuilder()
        .id("ui-constant-effect-key")
        .title("LaunchedEffect keyed on a constant")
        .category(RuleCategory.UI_FRAMEWORK)
        .severity(Severity.MINOR)
        .pattern(r"\bLaunchedEffect\s*\(\s*(?:Unit|true|false)\s*\)")
        .rationale(
            "`{captured}` runs once per composition entry; any state it reads is "
            "captured at that moment and goes stale."
        )
        .fix("Key the effect on the values it reads, or read them through `rememberUpdatedState`.")
        .with_tags("compose", "recomposition")
        .build(),
    ]


def _testing_rules() -> list[Rule]:
    return [
        RuleBuilder()
        .id("testing-missing-viewmodel-test")
        .title("ViewModel without a unit test")
        .category(RuleCategory.TESTING)
        .severity(Severity.MINOR)
        .matcher(missing_companion(
            LogicalRole.TEST,
            lambda stem: (f"{stem}Test", f"{stem}Tests"),
            r"\bclass\s+\w+",
        ))
        .for_roles(LogicalRole.VIEWMODEL)
        .rationale("`{captured}` holds presentation logic but no matching test was found.")
        .fix("Add a `{captured}Test` covering state transitions with a test dispatcher.")
        .with_tags("coverage")
        .build(),

        RuleBuilder()
        .id("testing-no-assertions")
        .title("Test without assertions")
        .category(RuleCategory.TESTING)
        .severity(Severity.MINOR)
        .matcher(absent_in_block(r"@Test\b", ASSERTION))
        .for_roles(LogicalRole.TEST)
        .rationale("This test passes as long as nothing throws; it verifies no behaviour.")
        .fix("Assert on the observable outcome (state, emitted values, or verified interactions).")
        .with_tags("coverage")
        .build(),
    ]


def _security_rules() -> list[Rule]:
    return [
        RuleBuilder()
        .id("security-hardcoded-secret")
        .title("Hardcoded secret")
        .category(RuleCategory.SECURITY)
        .severity(Severity.MAJOR)
        .matcher(line_pattern(
            r'\b(?:const\s+)?va[lr]\s+\w*(?i:api_?key|secret|password|passwd|token|credential)\w*'
            r'\s*(?::\s*String\??\s*)?=\s*"(?!")'
        ))
        .rationale(
            "`{captured}...` ships a credential inside the APK, where it can be "
            "extracted by anyone with the binary."
        )
        .fix("Load the value from the backend, encrypted storage, or build configuration kept out of source control.")
        .with_tags("secrets")
        .build(),

        RuleBuilder()
        .id("security-webview-javascript")
        .title("JavaScript enabled in a WebView")
        .category(RuleCategory.SECURITY)
        .severity(Severity.MAJOR)
        .pattern(r"\bjavaScriptEnabled\s*=\s*true\b|\bsetJavaScriptEnabled\s*\(\s*true\s*\)")
        .rationale("`{captured}` exposes the app to script injection from any page the WebView loads.")
        .fix("Leave JavaScript disabled, or restrict loading to trusted origins and avoid `addJavascriptInterface`.")
        .with_tags("webview")
        .build(),

        RuleBuilder()
        .id("security-logged-credential")
        .title("Credential written to the log")
        .category(RuleCategory.SECURITY)
        .severity(Severity.MAJOR)
        .matcher(line_pattern(
            r"\b(?:Log\s*\.\s*[vdiwe]|Timber\s*\.\s*[vdiwe]|println)\s*\("
            r".*\b\w*(?i:password|passwd|token|secret|api_?key|credential)\w*\b"
        ))
        .rationale("`{captured}` puts a credential into logcat, which other tools and crash reports can read.")
        .fix("Remove the value from the log statement or log a redacted form.")
        .with_tags("secrets", "logging")
        .build(),

        RuleBuilder()
        .id("security-world-readable-mode")
        .title("World-accessible file mode")
        .category(RuleCategory.SECURITY)
        .severity(Severity.CRITICAL)
        .pattern(r"\bMODE_WORLD_(?:READABLE|WRITEABLE)\b")
        .rationale("`{captured}` lets every app on the device read or modify the file.")
        .fix("Use `Context.MODE_PRIVATE` and share data through a FileProvider.")
        .with_tags("storage")
        .build(),
    ]


def builtin_rules() -> list[Rule]:
    """Fresh list of all built-in rules in catalog order."""
    return [
        *_architecture_rules(),
        *_kotlin_rules(),
        *_concurrency_rules(),
        *_lifecycle_rules(),
        *_ui_rules(),
        *_testing_rules(),
        *_security_rules(),
    ]
