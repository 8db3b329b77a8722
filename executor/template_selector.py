import os
from typing import List, Dict, Any
import logging

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

logger = logging.getLogger("gms_service")

TEMPLATE_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "templates")

GREETINGS: List[Dict[str, str]] = [
    {
        "title": "Rise and shine",
        "message": "Every morning is a fresh page. Write something kind on it today.",
    },
    {
        "title": "A brand new day",
        "message": "The sun did not ask permission to rise, and neither should your plans.",
    },
    {
        "title": "Good morning, sunshine",
        "message": "Small steps taken every day add up to journeys nobody thought possible.",
    },
    {
        "title": "Coffee first, then the world",
        "message": "Take a slow breath before the rush. The day will wait a minute for you.",
    },
    {
        "title": "Morning light",
        "message": "Somebody is glad you woke up today. Go find out who.",
    },
    {
        "title": "Hello, today",
        "message": "Yesterday ended last night. Today is yours to shape.",
    },
    {
        "title": "Bright and early",
        "message": "Be the reason someone smiles before lunch.",
    },
]


class TemplateSelector:
    """
    Maps a template index to rendered greeting html.
    Holds no state between calls: the same index always gives the same html.
    """

    def __init__(self, template_dir: str = TEMPLATE_DIR, greetings: List[Dict[str, str]] = None):
        # StrictUndefined raises an error if a variable is missing
        self.env = Environment(
            loader=FileSystemLoader(template_dir),
            undefined=StrictUndefined,
            autoescape=select_autoescape(["html", "j2"]),
        )
        self.greetings = greetings if greetings is not None else GREETINGS

    @property
    def pool_size(self) -> int:
        return len(self.greetings)

    def select_template(self, index: int) -> str:
        if not 0 <= index < self.pool_size:
            raise ValueError(f"Template index {index} outside pool of {self.pool_size}")
        return self.render("greeting.html.j2", {**self.greetings[index], "day_index": index})

    def render(self, template_name: str, context: Dict[str, Any]) -> str:
        """Renders a template file from the template directory."""
        try:
            template = self.env.get_template(template_name)
            return template.render(**context)
        except Exception as e:
            logger.error(f"Error rendering template {template_name}: {e}")
            raise ValueError(f"Template rendering failed: {e}") from e
