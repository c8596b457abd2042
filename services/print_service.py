from pathlib import Path
from typing import Any, Dict

from jinja2 import Environment, FileSystemLoader, select_autoescape

from config.settings import settings
from utils.display import format_thai_date, now_local

BASE_DIR = Path(__file__).resolve().parent.parent


class PrintService:
    """Renders the printable (chrome-free) HTML reports"""

    def __init__(self, template_dir: str = settings.TEMPLATE_DIR):
        path = Path(template_dir)
        if not path.is_absolute():
            path = BASE_DIR / path
        self.env = Environment(loader=FileSystemLoader(path), autoescape=select_autoescape(["html"]))
        self.env.filters["thai_date"] = format_thai_date
        self.env.filters["score"] = lambda v: f"{float(v or 0):.2f}"

    def _render_template(self, template_name: str, data: Dict[str, Any]) -> str:
        template = self.env.get_template(template_name)
        return template.render(printed_at=now_local(), **data)

    def admin_summary(self, data: Dict[str, Any]) -> str:
        return self._render_template("print/admin_overview.html", data)

    def faculty_report(self, data: Dict[str, Any]) -> str:
        return self._render_template("print/faculties.html", data)

    def major_report(self, data: Dict[str, Any]) -> str:
        return self._render_template("print/majors.html", data)

    def individual_report(self, data: Dict[str, Any]) -> str:
        return self._render_template("print/individual.html", data)


print_service = PrintService()
