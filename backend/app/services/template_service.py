# backend/app/services/template_service.py
"""
Template rendering service.

Renders file-based email templates and inline sequence-step bodies with one
Jinja2 environment and a shared common context.
"""

from datetime import datetime, timezone
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from jinja2 import Environment, FileSystemLoader, TemplateError, TemplateNotFound

from ..core.config import settings
from ..core.constants import BRAND_NAME
from .base import BaseService
from .template_registry import TemplateRegistry

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent.parent / "templates"


def _format_cents(value: Optional[int], currency: str = "USD") -> str:
    amount = (value or 0) / 100
    symbol = "$" if currency.upper() == "USD" else f"{currency.upper()} "
    return f"{symbol}{amount:,.2f}"


def _format_date(value: Any, format_str: str = "%B %d, %Y") -> str:
    if isinstance(value, datetime):
        return value.strftime(format_str)
    return str(value or "")


class TemplateService:
    """
    Jinja2 rendering with the platform's common context.

    Holds no database state, so it is safe to build one per email.
    """

    def __init__(self, template_dir: Optional[Path] = None):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.env = Environment(
            loader=FileSystemLoader(str(template_dir or TEMPLATE_DIR)),
            autoescape=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters["cents"] = _format_cents
        self.env.filters["format_date"] = _format_date

    def get_common_context(self) -> Dict[str, Any]:
        return {
            "brand_name": BRAND_NAME,
            "current_year": datetime.now(timezone.utc).year,
            "frontend_url": settings.frontend_url,
            "support_email": settings.from_email,
        }

    def _context(self, context: Optional[Dict[str, Any]], extra: Dict[str, Any]) -> Dict[str, Any]:
        full_context = self.get_common_context()
        full_context.update(context or {})
        full_context.update(extra)
        return full_context

    @BaseService.measure_operation("render_template")
    def render_template(
        self,
        template: TemplateRegistry | str,
        context: Optional[Dict[str, Any]] = None,
        **kwargs: Any,
    ) -> str:
        name = template.value if isinstance(template, TemplateRegistry) else template
        try:
            return self.env.get_template(name).render(self._context(context, kwargs))
        except TemplateNotFound:
            self.logger.error("Template not found: %s", name)
            raise

    @BaseService.measure_operation("render_string")
    def render_string(
        self, template_string: str, context: Optional[Dict[str, Any]] = None, **kwargs: Any
    ) -> str:
        """
        Render an inline template such as a sequence step subject or body.

        Bodies are written by coaches, so a broken template is logged and
        returned unrendered rather than blocking the send.
        """
        try:
            return self.env.from_string(template_string).render(self._context(context, kwargs))
        except TemplateError as e:
            self.logger.warning("Error rendering inline template: %s", e)
            return template_string

    def template_exists(self, template_name: str) -> bool:
        try:
            self.env.get_template(template_name)
            return True
        except TemplateNotFound:
            return False
