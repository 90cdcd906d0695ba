import asyncio
import inspect
import logging
import pathlib
import sys

import pytest

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers used in the suite."""

    config.addinivalue_line("markers", "asyncio: mark test as running in an asyncio event loop")


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem: pytest.Function) -> bool | None:
    """Execute async test functions without requiring pytest-asyncio."""

    test_function = pyfuncitem.obj
    if inspect.iscoroutinefunction(test_function):
        loop = asyncio.new_event_loop()
        try:
            asyncio.set_event_loop(loop)
            kwargs = {name: pyfuncitem.funcargs[name] for name in pyfuncitem._fixtureinfo.argnames}
            loop.run_until_complete(test_function(**kwargs))
        finally:
            asyncio.set_event_loop(None)
            loop.close()
        return True
    return None


# ---- Streamlit stand-in ----
class RerunRequested(Exception):
    """Raised by the fake ``st.rerun`` just like Streamlit halts the script."""


class FakeBlock:
    def __init__(self, st: "FakeStreamlit", name: str) -> None:
        self._st = st
        self._name = name

    def __enter__(self) -> "FakeBlock":
        return self

    def __exit__(self, *exc_info) -> bool:
        return False

    def __getattr__(self, name):
        return getattr(self._st, name)


class FakeComponents:
    def __init__(self) -> None:
        self.html_calls: list[str] = []

    def html(self, body: str, **kwargs) -> None:
        self.html_calls.append(body)


class FakeStreamlit:
    """Records every call.

    ``clicked`` holds label fragments whose buttons report a click; ``inputs``
    maps a widget label to the value the user entered.
    """

    RerunRequested = RerunRequested

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple, dict]] = []
        self.clicked: set[str] = set()
        self.inputs: dict = {}
        self.session_state: dict = {}
        self.query_params: dict = {}
        self.sidebar = FakeBlock(self, "sidebar")

    def _record(self, name: str, *args, **kwargs) -> None:
        self.calls.append((name, args, kwargs))

    def texts(self, name: str) -> list[str]:
        return [str(args[0]) for call, args, _ in self.calls if call == name and args]

    def count(self, name: str) -> int:
        return sum(1 for call, _, _ in self.calls if call == name)

    def rendered(self) -> str:
        return "\n".join(str(args[0]) for _, args, _ in self.calls if args)

    # output
    def markdown(self, body, **kwargs):
        self._record("markdown", body, **kwargs)

    def caption(self, body, **kwargs):
        self._record("caption", body, **kwargs)

    def write(self, body, **kwargs):
        self._record("write", body, **kwargs)

    def text(self, body, **kwargs):
        self._record("text", body, **kwargs)

    def info(self, body, **kwargs):
        self._record("info", body, **kwargs)

    def error(self, body, **kwargs):
        self._record("error", body, **kwargs)

    def metric(self, label, value, **kwargs):
        self._record("metric", label, value, **kwargs)

    def progress(self, value, **kwargs):
        self._record("progress", value, **kwargs)

    def plotly_chart(self, fig, **kwargs):
        self._record("plotly_chart", fig, **kwargs)

    def toast(self, body, **kwargs):
        self._record("toast", body, **kwargs)

    def divider(self):
        self._record("divider")

    # layout
    def columns(self, spec, **kwargs):
        n = spec if isinstance(spec, int) else len(spec)
        return [FakeBlock(self, "column") for _ in range(n)]

    def container(self, **kwargs):
        return FakeBlock(self, "container")

    def popover(self, label, **kwargs):
        self._record("popover", label, **kwargs)
        return FakeBlock(self, "popover")

    def form(self, key, **kwargs):
        return FakeBlock(self, "form")

    def spinner(self, text="", **kwargs):
        return FakeBlock(self, "spinner")

    def dialog(self, title, **kwargs):
        self._record("dialog", title, **kwargs)

        def decorator(func):
            return func

        return decorator

    # widgets
    def _is_clicked(self, label: str) -> bool:
        return any(fragment in label for fragment in self.clicked)

    def button(self, label, key=None, **kwargs):
        self._record("button", label, key=key, **kwargs)
        return self._is_clicked(label)

    def form_submit_button(self, label, **kwargs):
        self._record("form_submit_button", label, **kwargs)
        return self._is_clicked(label)

    def toggle(self, label, value=False, key=None, **kwargs):
        self._record("toggle", label, key=key, **kwargs)
        return value

    def selectbox(self, label, options, index=0, **kwargs):
        self._record("selectbox", label, options=list(options), **kwargs)
        return self.inputs.get(label, list(options)[index])

    def radio(self, label, options, index=0, **kwargs):
        self._record("radio", label, **kwargs)
        return list(options)[index]

    def text_input(self, label, value="", **kwargs):
        self._record("text_input", label, **kwargs)
        return self.inputs.get(label, value)

    def text_area(self, label, value="", **kwargs):
        self._record("text_area", label, **kwargs)
        return self.inputs.get(label, value)

    def number_input(self, label, value=None, **kwargs):
        self._record("number_input", label, **kwargs)
        return self.inputs.get(label, value)

    def date_input(self, label, value=None, **kwargs):
        self._record("date_input", label, **kwargs)
        return self.inputs.get(label, value)

    def rerun(self):
        self._record("rerun")
        raise RerunRequested()


UI_MODULES = (
    "herdbook_ui.navigation",
    "herdbook_ui.empty_state",
    "herdbook_ui.transaction_list",
    "herdbook_ui.transaction_summary",
    "herdbook_ui.transaction_dialog",
    "herdbook_ui.transaction_form",
)


@pytest.fixture
def fake_st(monkeypatch):
    import importlib

    fake = FakeStreamlit()
    fake.components = FakeComponents()
    for name in UI_MODULES:
        module = importlib.import_module(name)
        monkeypatch.setattr(module, "st", fake)
        if hasattr(module, "components"):
            monkeypatch.setattr(module, "components", fake.components)
    return fake


# ---- Logging ----
class ListHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__()
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


@pytest.fixture
def herdbook_logs():
    """Records emitted by any ``herdbook.*`` logger (they do not reach pytest's caplog)."""
    logger = logging.getLogger("herdbook")
    handler = ListHandler()
    logger.addHandler(handler)
    yield handler.records
    logger.removeHandler(handler)


# ---- Payloads ----
@pytest.fixture
def transaction_payload():
    def make(**overrides):
        payload = {
            "id": 1,
            "animal_id": 7,
            "transaction_type": "sale",
            "price": "1000.00",
            "tax_amount": "80.00",
            "total_amount": "1080.00",
            "balance_due": "580.00",
            "deposit_amount": "500.00",
            "currency": "USD",
            "transaction_date": "2024-01-05",
            "transaction_status": "completed",
            "seller_name": "Green Acres",
            "buyer_name": "Hill Farm",
            "details": "Registered Angus heifer",
            "attached_documents": [],
            "created_at": "2024-01-05T10:00:00Z",
        }
        payload.update(overrides)
        return payload

    return make
