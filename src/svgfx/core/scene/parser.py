"""
Scene Parser
============

Loads laid-out scene documents from JSON or YAML. Documents are checked
structurally with Cerberus first, then converted into pydantic models.
"""

from typing import Any, Dict, List, Optional, Set
import json
import time
from abc import ABC, abstractmethod

import yaml  # type: ignore[import-untyped]
from cerberus import Validator  # type: ignore[import-untyped]
from pydantic import ValidationError

from svgfx.config.logging import get_logger
from svgfx.models.schemas import ParseResult, SceneDocument

logger = get_logger(__name__)


class SceneParseError(Exception):
    """Exception raised when scene parsing fails."""

    pass


class SceneValidator:
    """Structural scene validation using Cerberus schemas."""

    def __init__(self) -> None:
        self.logger: Any = logger.bind(component="validator")  # structlog.BoundLoggerBase
        self._setup_schemas()

    def _setup_schemas(self) -> None:
        """Setup validation schemas."""
        self.box_schema = {
            "x": {"type": "number"},
            "y": {"type": "number"},
            "width": {"type": "number", "min": 0, "required": True},
            "height": {"type": "number", "min": 0, "required": True},
        }

        self.text_run_schema = {
            "text": {"type": "string", "required": True},
            "position": {"type": "dict", "schema": self.box_schema, "required": True},
            "fontSize": {"type": "number", "min": 0},
            "fontFamily": {"type": "string"},
            "weight": {"type": "integer", "min": 1, "max": 1000},
            "italic": {"type": "boolean"},
            "color": {"type": ["string", "list", "dict"]},
            "shadows": {"type": ["string", "list"]},
            "outline": {"type": "string", "nullable": True},
        }

        # Children are validated node by node in _validate_node
        self.node_schema = {
            "id": {"type": "string", "nullable": True},
            "box": {"type": "dict", "schema": self.box_schema, "required": True},
            "borderRadius": {"type": ["number", "string", "dict"]},
            "opacity": {"type": "number", "min": 0.0, "max": 1.0},
            "overflowClip": {"type": "boolean"},
            "backgrounds": {"type": "list", "schema": {"type": "dict"}},
            "boxShadows": {"type": ["string", "list"]},
            "border": {"type": "dict", "nullable": True},
            "textRuns": {
                "type": "list",
                "schema": {"type": "dict", "schema": self.text_run_schema, "allow_unknown": True},
            },
            "filters": {"type": "list", "schema": {"type": "dict"}},
            "inlineSvg": {"type": "string", "nullable": True},
            "children": {"type": "list", "schema": {"type": "dict"}},
        }

        self.document_schema: Dict[str, Any] = {
            "title": {"type": "string", "nullable": True},
            "width": {"type": "integer", "min": 1, "max": 4000, "default": 800},
            "height": {"type": "integer", "min": 1, "max": 4000, "default": 600},
            "nodes": {"type": "list", "required": True, "schema": {"type": "dict"}},
            "metadata": {"type": "dict", "default": {}},
        }

    def validate_document(self, data: Dict[str, Any]) -> tuple[bool, List[str], List[str]]:
        """
        Validate scene document structure.

        Args:
            data: Document data to validate

        Returns:
            Tuple of (is_valid, errors, warnings)
        """
        validator = Validator(self.document_schema)  # type: ignore[misc]
        validator.allow_unknown = True  # type: ignore[attr-defined]

        is_valid = validator.validate(data)  # type: ignore[misc]
        errors: List[str] = []
        warnings: List[str] = []

        if not is_valid:
            errors.extend(self._format_validation_errors(validator.errors))  # type: ignore[attr-defined]
            return False, errors, warnings

        seen_ids: Set[str] = set()
        for i, node in enumerate(data.get("nodes", [])):
            node_errors, node_warnings = self._validate_node(node, f"nodes[{i}]", seen_ids)
            errors.extend(node_errors)
            warnings.extend(node_warnings)

        width = data.get("width", 800)
        height = data.get("height", 600)
        if width > 1920 or height > 1080:
            warnings.append(f"Large canvas size ({width}x{height}) may impact performance")

        return len(errors) == 0, errors, warnings

    def _format_validation_errors(self, errors: Any, path: str = "") -> List[str]:
        """Format Cerberus validation errors into readable messages."""
        formatted_errors: List[str] = []

        for field, error_info in errors.items():
            current_path = f"{path}.{field}" if path else str(field)

            if isinstance(error_info, list):
                for error in error_info:
                    if isinstance(error, dict):
                        formatted_errors.extend(self._format_validation_errors(error, current_path))
                    else:
                        formatted_errors.append(f"{current_path}: {error}")
            elif isinstance(error_info, dict):
                formatted_errors.extend(self._format_validation_errors(error_info, current_path))

        return formatted_errors

    def _validate_node(
        self, node: Dict[str, Any], path: str, seen_ids: Set[str]
    ) -> tuple[List[str], List[str]]:
        """Validate a node and its subtree."""
        errors: List[str] = []
        warnings: List[str] = []

        validator = Validator(self.node_schema)  # type: ignore[misc]
        validator.allow_unknown = True  # type: ignore[attr-defined]
        if not validator.validate(node):  # type: ignore[misc]
            errors.extend(self._format_validation_errors(validator.errors, path))  # type: ignore[attr-defined]
            return errors, warnings

        node_id = node.get("id")
        if node_id:
            if node_id in seen_ids:
                warnings.append(f"{path}: Duplicate node id '{node_id}'")
            seen_ids.add(node_id)

        for i, background in enumerate(node.get("backgrounds", [])):
            sources = [key for key in ("color", "imageUrl", "image_url", "linear", "radial", "conic") if background.get(key)]
            if not sources:
                warnings.append(f"{path}.backgrounds[{i}]: Background has nothing to paint")

        inline_svg = node.get("inlineSvg") or node.get("inline_svg")
        if inline_svg and "<svg" not in inline_svg:
            warnings.append(f"{path}: Inline SVG has no <svg> root and will be wrapped")

        for i, child in enumerate(node.get("children", [])):
            child_errors, child_warnings = self._validate_node(child, f"{path}.children[{i}]", seen_ids)
            errors.extend(child_errors)
            warnings.extend(child_warnings)

        return errors, warnings


class BaseSceneParser(ABC):
    """Abstract base class for scene parsers."""

    def __init__(self) -> None:
        self.validator = SceneValidator()

    @abstractmethod
    def load(self, content: str) -> Any:
        """Decode raw content."""
        pass

    @abstractmethod
    def validate_syntax(self, content: str) -> bool:
        """Validate syntax without full parsing."""
        pass

    def parse(self, content: str) -> ParseResult:
        """
        Parse scene content into a SceneDocument.

        Args:
            content: Raw scene content as string

        Returns:
            ParseResult containing parsed document or errors
        """
        start_time = time.time()

        try:
            self.logger.info("Parsing scene content")
            raw_data = self.load(content)
            if not isinstance(raw_data, dict):
                raise SceneParseError("Scene root must be an object")

            is_valid, errors, warnings = self.validator.validate_document(raw_data)
            if not is_valid:
                return ParseResult(
                    success=False,
                    errors=errors,
                    warnings=warnings,
                    processing_time=time.time() - start_time,
                )

            document = SceneDocument.model_validate(raw_data)
            return ParseResult(
                success=True,
                document=document,
                warnings=warnings,
                processing_time=time.time() - start_time,
            )

        except ValidationError as e:
            errors = [
                f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
                for error in e.errors()
            ]
            self.logger.error("Scene model validation failed", errors=len(errors))
            return ParseResult(
                success=False, errors=errors, processing_time=time.time() - start_time
            )
        except SceneParseError as e:
            self.logger.error("Scene parsing failed", error=str(e))
            return ParseResult(
                success=False, errors=[str(e)], processing_time=time.time() - start_time
            )


class JSONSceneParser(BaseSceneParser):
    """JSON scene parser."""

    def __init__(self) -> None:
        super().__init__()
        self.logger: Any = logger.bind(parser="json")  # structlog.BoundLoggerBase

    def load(self, content: str) -> Any:
        try:
            return json.loads(content)
        except json.JSONDecodeError as e:
            raise SceneParseError(
                f"Invalid JSON syntax at line {e.lineno}, column {e.colno}: {e.msg}"
            )

    def validate_syntax(self, content: str) -> bool:
        try:
            json.loads(content)
            return True
        except json.JSONDecodeError:
            return False


class YAMLSceneParser(BaseSceneParser):
    """YAML scene parser."""

    def __init__(self) -> None:
        super().__init__()
        self.logger: Any = logger.bind(parser="yaml")  # structlog.BoundLoggerBase

    def load(self, content: str) -> Any:
        try:
            return yaml.safe_load(content)
        except yaml.YAMLError as e:
            error_msg = "Invalid YAML syntax"
            mark = getattr(e, "problem_mark", None)
            if mark is not None:
                error_msg += f" at line {mark.line + 1}, column {mark.column + 1}"
            raise SceneParseError(f"{error_msg}: {e}")

    def validate_syntax(self, content: str) -> bool:
        try:
            yaml.safe_load(content)
            return True
        except yaml.YAMLError:
            return False


class SceneParserFactory:
    """Factory for creating scene parsers based on content type."""

    _parsers = {
        "json": JSONSceneParser,
        "yaml": YAMLSceneParser,
    }

    @classmethod
    def create_parser(cls, parser_type: str) -> BaseSceneParser:
        """
        Create a scene parser instance.

        Raises:
            ValueError: If parser type is not supported
        """
        if parser_type not in cls._parsers:
            raise ValueError(f"Unsupported parser type: {parser_type}")

        return cls._parsers[parser_type]()

    @classmethod
    def detect_parser_type(cls, content: str) -> str:
        """Detect parser type from content."""
        content = content.strip()
        if content.startswith(("{", "[")):
            return "json"
        elif content.startswith(("---", "- ")) or "\n-" in content[:100]:
            return "yaml"
        else:
            try:
                json.loads(content)
                return "json"
            except json.JSONDecodeError:
                return "yaml"


def parse_scene(content: str, parser_type: Optional[str] = None) -> ParseResult:
    """
    Parse scene content using the appropriate parser.

    Args:
        content: Raw scene content
        parser_type: Optional parser type override

    Returns:
        ParseResult containing parsed document or errors
    """
    if not content or not content.strip():
        return ParseResult(success=False, errors=["Empty scene content provided"])

    if not parser_type:
        parser_type = SceneParserFactory.detect_parser_type(content)

    try:
        parser = SceneParserFactory.create_parser(parser_type)
        return parser.parse(content)
    except ValueError as e:
        return ParseResult(success=False, errors=[str(e)])


def load_scene(content: str, parser_type: Optional[str] = None) -> SceneDocument:
    """
    Parse scene content, raising on failure.

    Raises:
        SceneParseError: If the content is not a valid scene document
    """
    result = parse_scene(content, parser_type)
    if not result.success or result.document is None:
        raise SceneParseError("; ".join(result.errors) or "Scene parsing failed")
    return result.document
