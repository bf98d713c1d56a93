"""Per-request screen rendering."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import structlog
from jinja2 import Environment, FileSystemLoader, select_autoescape

from ..actions import ActionContext
from ..config.settings import ScreenSettings
from ..context.scopes import InMemoryScopedStore, ScopedStore
from ..context.stack import create_screen_context
from ..entity.value import Delegator
from ..resources import FilesystemPropertyLoader, PropertyLoader
from ..scripting import ScriptRegistry
from ..services import ServiceDispatcher
from .factory import ScreenFactory


logger = structlog.get_logger(__name__)


@dataclass
class RenderRequest:
    """What a caller asks to have rendered."""

    location: str
    parameters: Dict[str, Any] = field(default_factory=dict)
    content_type: Optional[str] = None
    locale: Optional[str] = None
    time_zone: Optional[str] = None
    session: Optional[ScopedStore] = None
    attributes: Dict[str, Any] = field(default_factory=dict)


class ScreenRenderer:
    """Populates request contexts and renders screens into text.

    Collaborators not supplied are built from the settings; the
    application store is created once and shared by every request.
    """

    def __init__(
        self,
        settings: ScreenSettings,
        factory: Optional[ScreenFactory] = None,
        dispatcher: Optional[ServiceDispatcher] = None,
        delegator: Optional[Delegator] = None,
        properties: Optional[PropertyLoader] = None,
        scripts: Optional[ScriptRegistry] = None,
        application: Optional[ScopedStore] = None,
        environment: Optional[Environment] = None,
    ) -> None:
        self.settings = settings
        self.factory = factory or ScreenFactory(settings.screen_dirs)
        self.dispatcher = dispatcher
        self.delegator = delegator
        self.properties = properties or FilesystemPropertyLoader(settings.resource_dirs)
        self.scripts = scripts or ScriptRegistry.with_defaults(settings.script_dirs)
        self.application = application or InMemoryScopedStore("application")
        self.environment = environment or Environment(
            loader=FileSystemLoader(settings.template_dirs),
            autoescape=select_autoescape(["fo", "xml", "html"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def populate_context_for_request(self, request: RenderRequest) -> ActionContext:
        """Create the context and collaborator bundle for one request."""
        session = request.session if request.session is not None else InMemoryScopedStore("session")
        context = create_screen_context(
            parameters=request.parameters,
            locale=request.locale or self.settings.default_locale,
            time_zone=request.time_zone or self.settings.default_time_zone,
            session=session,
            application=self.application,
            **request.attributes,
        )
        return ActionContext(
            context=context,
            session=session,
            application=self.application,
            dispatcher=self.dispatcher,
            delegator=self.delegator,
            scripts=self.scripts,
            properties=self.properties,
        )

    def render(self, location: str, action_context: ActionContext) -> str:
        """Render the screen at ``location`` with an already populated context.

        Raises:
            ScreenNotFoundError: If the location does not resolve
            ActionError: If a screen action fails
        """
        screen = self.factory.get_screen(location)
        logger.info("Rendering screen", screen=screen.full_location)
        return screen.render_screen(action_context, self.environment)
