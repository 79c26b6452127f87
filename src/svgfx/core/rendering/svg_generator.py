"""
SVG Generator
=============

Render entry points. A `RenderSession` owns every piece of mutable state
of one render pass (canvas backend, adapter, side tables, composition
stack); nothing is shared between passes, so separate sessions may run on
separate threads.
"""

from typing import Any, Dict, Optional, Type
from abc import ABC, abstractmethod
import time

from svgfx.config.logging import get_logger
from svgfx.config.settings import Settings, get_settings
from svgfx.core.effects.composition import CompositionError, CompositionStack
from svgfx.core.effects.tables import EffectRecorder, IndexSpaceExhaustedError
from svgfx.core.rendering.canvas_adapter import TaggingCanvas
from svgfx.core.rendering.images import ImageStore
from svgfx.core.rendering.painter import DocumentPainter
from svgfx.core.rendering.resolver import VectorResolver
from svgfx.core.rendering.svg_canvas import CanvasSerializationError, SvgCanvas
from svgfx.models.schemas import Position, RenderOptions, SceneDocument, SvgResult

logger = get_logger(__name__)


class SVGGenerationError(Exception):
    """Exception raised when SVG generation fails."""

    pass


class RenderSession:
    """State of a single render pass."""

    def __init__(
        self,
        width: int,
        height: int,
        options: Optional[RenderOptions] = None,
        images: Optional[ImageStore] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.options = options or RenderOptions()
        self.width = width
        self.height = height
        self.images = images or ImageStore(self.settings)
        self.recorder = EffectRecorder()
        self.stack = CompositionStack()
        self.canvas = SvgCanvas(
            width,
            height,
            precision=self.settings.number_precision,
            text_to_paths=self.options.text_to_paths,
        )
        self.adapter = TaggingCanvas(
            self.canvas,
            recorder=self.recorder,
            stack=self.stack,
            images=self.images,
            settings=self.settings,
            tagging=self.options.tagging,
            viewport=Position(width=width, height=height),
        )
        self.painter = DocumentPainter()
        self.resolver_stats: Dict[str, int] = {}
        self._finished = False

    @classmethod
    def for_document(
        cls,
        document: SceneDocument,
        options: Optional[RenderOptions] = None,
        images: Optional[ImageStore] = None,
        settings: Optional[Settings] = None,
    ) -> "RenderSession":
        return cls(document.width, document.height, options, images, settings)

    def paint(self, document: SceneDocument) -> None:
        """Paint a document (page background first) onto the session canvas."""
        if self._finished:
            raise SVGGenerationError("Render session already finished")
        if self.options.background is not None:
            self.adapter.draw_solid_fill(
                Position(width=self.width, height=self.height), None, self.options.background
            )
        self.painter.paint(document, self.adapter)

    def finish(self) -> str:
        """
        Serialize the canvas and, in tagging mode, resolve the markup.

        Raises:
            CompositionError: If clip, layer or filter scopes are still open
            CanvasSerializationError: If the backend cannot serialize
        """
        if self._finished:
            raise SVGGenerationError("Render session already finished")
        if not self.adapter.is_balanced():
            raise CompositionError("Render finished with open clip, layer or filter scopes")

        markup = self.canvas.serialize()
        self._finished = True
        if not self.options.tagging:
            return markup

        resolver = VectorResolver(self.recorder, self.images, self.settings)
        svg = resolver.resolve(markup)
        self.resolver_stats = resolver.stats
        return svg

    def stats(self) -> Dict[str, int]:
        stats = dict(self.recorder.stats())
        stats.update({f"resolver_{key}": value for key, value in self.resolver_stats.items()})
        return stats


class BaseSVGGenerator(ABC):
    """Abstract base class for SVG generators."""

    @abstractmethod
    def generate(
        self,
        document: SceneDocument,
        options: Optional[RenderOptions] = None,
        images: Optional[ImageStore] = None,
    ) -> SvgResult:
        """Generate SVG from a scene document."""
        pass


class SessionSVGGenerator(BaseSVGGenerator):
    """Generator running each document through its own render session."""

    tagging: Optional[bool] = None

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or get_settings()
        self.logger: Any = logger.bind(generator=self.__class__.__name__)  # structlog.BoundLoggerBase

    def generate(
        self,
        document: SceneDocument,
        options: Optional[RenderOptions] = None,
        images: Optional[ImageStore] = None,
    ) -> SvgResult:
        """
        Generate SVG from a scene document.

        Args:
            document: Laid-out scene document
            options: Render options
            images: Image resources referenced by the document

        Returns:
            Generated SVG document and pass statistics

        Raises:
            IndexSpaceExhaustedError: If a side table overflows
            SVGGenerationError: If the document cannot be rendered
        """
        options = options or RenderOptions()
        if self.tagging is not None and options.tagging != self.tagging:
            options = options.model_copy(update={"tagging": self.tagging})

        if document.width > self.settings.max_width or document.height > self.settings.max_height:
            raise SVGGenerationError(
                f"Document size {document.width}x{document.height} exceeds "
                f"{self.settings.max_width}x{self.settings.max_height}"
            )

        start_time = time.time()
        try:
            self.logger.info(
                "Generating SVG from scene document",
                nodes=len(document.nodes),
                tagging=options.tagging,
            )

            session = RenderSession.for_document(document, options, images, self.settings)
            session.paint(document)
            svg = session.finish()
            stats = session.stats()

            processing_time = time.time() - start_time
            self.logger.info(
                "SVG generation completed",
                svg_length=len(svg),
                processing_time=round(processing_time, 4),
                **stats,
            )

            return SvgResult(
                svg=svg,
                width=document.width,
                height=document.height,
                stats=stats,
                metadata={"title": document.title, "processing_time": processing_time},
            )

        except IndexSpaceExhaustedError as e:
            self.logger.error("SVG generation aborted", error=str(e))
            raise
        except (CanvasSerializationError, CompositionError) as e:
            error_msg = f"Render pass failed: {e}"
            self.logger.error("SVG generation failed", error=error_msg)
            raise SVGGenerationError(error_msg)
        except SVGGenerationError:
            raise
        except Exception as e:
            error_msg = f"Unexpected SVG generation error: {e}"
            self.logger.error("SVG generation failed", error=error_msg)
            raise SVGGenerationError(error_msg)


class TaggingSVGGenerator(SessionSVGGenerator):
    """Defers effects through tagging and resolves them afterwards."""

    tagging = True


class DirectSVGGenerator(SessionSVGGenerator):
    """Paints straight onto the backend; effects it cannot express degrade."""

    tagging = False


class SVGGeneratorFactory:
    """Factory for creating SVG generators."""

    _generators: Dict[str, Type[SessionSVGGenerator]] = {
        "tagging": TaggingSVGGenerator,
        "direct": DirectSVGGenerator,
        "session": SessionSVGGenerator,
    }

    @classmethod
    def create_generator(
        cls, generator_type: str = "session", settings: Optional[Settings] = None
    ) -> BaseSVGGenerator:
        """
        Create SVG generator instance.

        Raises:
            ValueError: If generator type is not supported
        """
        if generator_type not in cls._generators:
            raise ValueError(f"Unsupported generator type: {generator_type}")

        return cls._generators[generator_type](settings)


def render_svg(
    document: SceneDocument,
    options: Optional[RenderOptions] = None,
    images: Optional[ImageStore] = None,
    generator_type: str = "session",
) -> SvgResult:
    """
    Render a scene document to SVG.

    Args:
        document: Laid-out scene document
        options: Render options; `tagging` selects the pipeline
        images: Image resources referenced by the document
        generator_type: SVG generator type

    Returns:
        SVG result
    """
    generator = SVGGeneratorFactory.create_generator(generator_type)
    return generator.generate(document, options, images)
