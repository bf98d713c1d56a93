"""View handler rendering screens as XSL-FO and formatting the result."""

from dataclasses import dataclass
from typing import Any, Optional

import structlog

from ..config.settings import ScreenSettings
from ..errors import ViewHandlerError
from ..screens.renderer import RenderRequest, ScreenRenderer
from ..utils.metrics import record_view
from .engines import FopCommandEngine, FormattingEngine, FormattingEngineError, TransformError


logger = structlog.get_logger(__name__)

DEFAULT_CONTENT_TYPE = "application/pdf"
ERROR_MESSAGE = "errorMessage"


@dataclass
class RenderedView:
    """Formatted output ready to hand to a response."""

    content_type: str
    content: bytes

    @property
    def content_length(self) -> int:
        return len(self.content)


class ScreenFopViewHandler:
    """Renders a screen to XSL-FO and formats it into PDF, PCL, PostScript...

    A failed transform is retried once with the configured error screen,
    which receives the failure text as ``errorMessage``.
    """

    def __init__(
        self,
        renderer: ScreenRenderer,
        engine: Optional[FormattingEngine] = None,
        settings: Optional[ScreenSettings] = None,
    ) -> None:
        self.renderer = renderer
        self.settings = settings or renderer.settings
        self.engine = engine or FopCommandEngine(self.settings.fop_command, self.settings.fop_timeout)

    def _render_fo(self, location: str, request: RenderRequest, **extra: Any) -> str:
        action_context = self.renderer.populate_context_for_request(request)
        action_context.context.update(extra)
        return self.renderer.render(location, action_context)

    def render(self, request: RenderRequest) -> RenderedView:
        """Render and format the screen named by the request.

        Args:
            request: Screen location, parameters and requested output type

        Returns:
            Formatted view

        Raises:
            ViewHandlerError: If the screen, the transform or the engine fails
        """
        content_type = request.content_type or self.settings.default_content_type or DEFAULT_CONTENT_TYPE

        try:
            fo = self._render_fo(request.location, request)
        except Exception as e:
            logger.error("Screen render failed", location=request.location, error=str(e))
            record_view(content_type, "failed")
            raise ViewHandlerError("Problems with the response writer/output stream") from e

        logger.debug("Transforming XSL-FO", location=request.location, fo=fo)
        status = "failed"
        try:
            try:
                content = self.engine.transform(fo, content_type)
                status = "success"
            except TransformError as e:
                logger.error("FOP transform failed", location=request.location, error=str(e))
                logger.info(
                    "Rendering the error message using the error screen",
                    error_screen=self.settings.error_screen,
                )
                try:
                    error_fo = self._render_fo(self.settings.error_screen, request, **{ERROR_MESSAGE: str(e)})
                    content = self.engine.transform(error_fo, content_type)
                except Exception as fallback_error:
                    # report the transform error, not the fallback one
                    logger.error(
                        "Error screen could not be rendered",
                        error_screen=self.settings.error_screen,
                        error=str(fallback_error),
                    )
                    raise ViewHandlerError(f"Unable to transform FO to {content_type}") from e
                status = "fallback"
        except FormattingEngineError as e:
            logger.error("FOP Exception", content_type=content_type, error=str(e))
            raise ViewHandlerError("FOP Error") from e
        finally:
            self.engine.clear_caches()
            record_view(content_type, status)

        logger.info(
            "Rendered view",
            location=request.location,
            content_type=content_type,
            content_length=len(content),
            status=status,
        )
        return RenderedView(content_type=content_type, content=content)
