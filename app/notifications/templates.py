"""Template rendering for contact messages using Jinja2.

Messages are plain text handed to a chat link, so autoescaping is off and
StrictUndefined catches missing context keys early.
"""

from typing import Any, Dict

from jinja2 import Environment, PackageLoader, StrictUndefined, TemplateError

from app.logging import get_logger

from .models import MessageTemplateError

logger = get_logger(__name__, component="notifications")


class MessageRenderer:
    """Renders contact message templates from app.notifications.message_templates.

    Templates are cached by the Jinja2 environment across invocations.
    """

    def __init__(
        self,
        template_dir: str = "message_templates",
        message_template: str = "contact_message.txt.j2",
    ):
        """Initialize renderer with a Jinja2 environment.

        Args:
            template_dir: Directory name within app.notifications package
            message_template: Filename of the contact message template
        """
        self.message_template_name = message_template

        self.env = Environment(
            loader=PackageLoader("app.notifications", template_dir),
            autoescape=False,
            undefined=StrictUndefined,
        )

        logger.debug(
            f"Initialized MessageRenderer with templates from {template_dir}",
            extra={"event": "notifications.renderer.initialized"},
        )

    def render(self, context: Dict[str, Any]) -> str:
        """Render the contact message with the provided context.

        Raises:
            MessageTemplateError: If template rendering fails
        """
        try:
            template = self.env.get_template(self.message_template_name)
            return template.render(context)
        except TemplateError as e:
            error_msg = f"Template rendering failed: {e}"
            logger.error(
                error_msg,
                exc_info=True,
                extra={"event": "notifications.render.failed", "kind": context.get("kind")},
            )
            raise MessageTemplateError(error_msg) from e
