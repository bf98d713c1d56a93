"""Pytest configuration and fixtures for screenkit tests."""

from unittest.mock import MagicMock

import pytest
import structlog
import yaml

from screenkit.actions import ActionContext, ActionList
from screenkit.config import ScreenSettings
from screenkit.context import InMemoryScopedStore, create_screen_context
from screenkit.entity import Delegator
from screenkit.resources import FilesystemPropertyLoader
from screenkit.scripting import ScriptRegistry
from screenkit.services import ModelParam, ModelService, ServiceDispatcher


@pytest.fixture
def screen_settings(tmp_path):
    """Provide test screen settings rooted in a temporary directory."""
    for name in ("screens", "templates", "scripts", "resources"):
        (tmp_path / name).mkdir()
    return ScreenSettings(
        log_level="DEBUG",
        screen_dirs=[str(tmp_path / "screens")],
        template_dirs=[str(tmp_path / "templates")],
        script_dirs=[str(tmp_path / "scripts")],
        resource_dirs=[str(tmp_path / "resources")],
        error_screen="Screens.yaml#FoError",
        metrics_enabled=False,
    )


@pytest.fixture
def resource_dir(tmp_path):
    """Provide a directory of label bundles."""
    directory = tmp_path / "labels"
    directory.mkdir()
    bundles = {
        "CommonUiLabels": {
            "CommonSave": "Save",
            "CommonGreeting": "Hello {0}, you have {1} orders",
            "CommonQuote": "It''s {0}",
        },
        "CommonUiLabels_fr": {"CommonSave": "Enregistrer"},
        "ProductUiLabels": {"CommonSave": "Product Save", "ProductName": "Product Name"},
        "general": {"currency.default": "EUR"},
    }
    for name, labels in bundles.items():
        (directory / f"{name}.yaml").write_text(yaml.safe_dump(labels), encoding="utf-8")
    return directory


@pytest.fixture
def property_loader(resource_dir):
    """Provide a property loader over the label bundles."""
    return FilesystemPropertyLoader([str(resource_dir)])


@pytest.fixture
def session_store():
    """Provide an empty session store."""
    return InMemoryScopedStore("session")


@pytest.fixture
def application_store():
    """Provide an empty application store."""
    return InMemoryScopedStore("application")


@pytest.fixture
def mock_dispatcher():
    """Provide a mocked service dispatcher."""
    dispatcher = MagicMock(spec=ServiceDispatcher)
    dispatcher.get_model_service.return_value = ModelService(
        name="createThing",
        parameters=[
            ModelParam(name="id"),
            ModelParam(name="quantity", type="Long"),
            ModelParam(name="note", mode="INOUT"),
            ModelParam(name="thingId", mode="OUT"),
        ],
    )
    dispatcher.run_sync.return_value = {"thingId": "T100"}
    return dispatcher


@pytest.fixture
def mock_delegator():
    """Provide a mocked entity delegator."""
    delegator = MagicMock(spec=Delegator)
    delegator.get_pk_field_names.return_value = ["productId"]
    delegator.find_one.return_value = None
    delegator.find_list.return_value = []
    delegator.get_related_one.return_value = None
    delegator.get_related.return_value = []
    return delegator


@pytest.fixture
def screen_context(session_store, application_store):
    """Provide a request context with a local layer over the global one."""
    return create_screen_context(
        parameters={"orderId": "O1"},
        locale="en_US",
        time_zone="Europe/Amsterdam",
        session=session_store,
        application=application_store,
    )


@pytest.fixture
def action_context(
    screen_context, session_store, application_store, mock_dispatcher, mock_delegator, property_loader
):
    """Provide an action context with every collaborator wired in."""
    return ActionContext(
        context=screen_context,
        session=session_store,
        application=application_store,
        dispatcher=mock_dispatcher,
        delegator=mock_delegator,
        scripts=ScriptRegistry.with_defaults(),
        properties=property_loader,
    )


@pytest.fixture
def run_actions(action_context):
    """Provide a helper that builds and runs action nodes against the action context."""

    def run(*nodes):
        return ActionList.read(list(nodes)).run(action_context)

    return run


@pytest.fixture
def reset_logging():
    """Restore the default structlog configuration after the test."""
    yield
    structlog.reset_defaults()
