"""
Error types for the memorial preview renderer.

Every failure the renderer can hit is recoverable: the host receives one of
these through the renderer's ``on_error`` callback (or as a raised exception
from an explicit setter) and decides how to surface it to the customer.
"""

from typing import Dict, List, Optional, Any


class PreviewError(Exception):
    """Base exception for all preview renderer errors."""

    def __init__(self, message: str, details: Dict[str, Any] = None, suggestions: List[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.suggestions = suggestions or []

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for JSON serialization."""
        return {
            'error_type': self.__class__.__name__,
            'message': self.message,
            'details': self.details,
            'suggestions': self.suggestions
        }


class ValidationError(PreviewError):
    """Raised when host-supplied input is rejected."""
    pass


class ConfigurationError(PreviewError):
    """Raised when configuration or a template descriptor is invalid."""
    pass


class LayoutError(PreviewError):
    """Raised when a layout cannot be applied."""
    pass


class RenderError(PreviewError):
    """Raised when a region cannot be drawn."""
    pass


class UnknownLayoutError(LayoutError):
    """Raised when a layout id is not in the catalog."""

    def __init__(self, layout_id: str, available: List[str] = None):
        super().__init__(
            f"Unknown layout: {layout_id}",
            details={
                'layout_id': layout_id,
                'available': available or []
            },
            suggestions=[
                "Pick one of the catalog layouts",
                "Fall back to the template's default layout"
            ]
        )


class DecodeFailedError(RenderError):
    """Raised when photo bytes cannot be decoded into an image."""

    def __init__(self, region_id: str, reason: str = None, size_bytes: int = None):
        super().__init__(
            f"Could not decode photo for region '{region_id}'",
            details={
                'region_id': region_id,
                'reason': reason,
                'size_bytes': size_bytes
            },
            suggestions=[
                "Use a JPG or PNG photo",
                "Ensure the file is not corrupted",
                "Convert HEIC photos before uploading"
            ]
        )


class MeasurementUnavailableError(RenderError):
    """Raised when text cannot be measured yet (fonts still loading)."""

    def __init__(self, face: str = None):
        super().__init__(
            "Text measurement is not available yet",
            details={'face': face},
            suggestions=[
                "Wait for fonts to finish loading; the render is deferred, not skipped"
            ]
        )


class TemplateNotFoundError(ConfigurationError):
    """Raised when a template descriptor file cannot be found."""

    def __init__(self, template_id: str, search_path: str):
        super().__init__(
            f"Template not found: {template_id}",
            details={
                'template_id': template_id,
                'search_path': search_path
            },
            suggestions=[
                f"Ensure {template_id}.yaml or {template_id}.json exists in {search_path}",
                "Check TEMPLATE_DIR in config/settings.yaml"
            ]
        )


class FileTooLargeError(ValidationError):
    """Raised when uploaded photo bytes exceed the size limit."""

    def __init__(self, region_id: str, size_mb: float, limit_mb: float):
        super().__init__(
            f"Photo too large for region '{region_id}' ({size_mb:.1f}MB exceeds {limit_mb:.1f}MB limit)",
            details={
                'region_id': region_id,
                'size_mb': size_mb,
                'limit_mb': limit_mb
            },
            suggestions=[
                f"Reduce the photo to under {limit_mb:.1f}MB",
                "Export the photo at a lower resolution"
            ]
        )


def create_error_recovery_suggestions(error: Exception, context: Optional[Dict[str, Any]] = None) -> List[str]:
    """Generate contextual recovery suggestions for any error."""
    suggestions = []

    if isinstance(error, PreviewError):
        suggestions.extend(error.suggestions)

    if context:
        if context.get('deferred_regions', 0) > 0:
            suggestions.append("Some panels are waiting for fonts and will appear shortly")

        if context.get('empty_regions', 0) > 0:
            suggestions.append("Upload a photo for every photo panel")

    if not suggestions:
        suggestions = [
            "Try the change again",
            "Reload the customizer if the preview stays blank"
        ]

    return suggestions
