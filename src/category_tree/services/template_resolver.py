"""File-system template resolver.

Templates are looked up relative to the current templates path. The path can
be swapped temporarily, which the group service uses to check category group
templates against the site templates root.
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Union

from category_tree.utils.constants import TEMPLATE_EXTENSIONS


class FileSystemTemplateResolver:
    """
    Resolve template names to files.

    A template name ``"topics/_category"`` matches, in order:
    ``topics/_category``, ``topics/_category.html``, ``topics/_category.twig``,
    ``topics/_category/index.html`` and ``topics/_category/index.twig``.
    """

    def __init__(
        self,
        site_templates_path: Union[str, Path],
        templates_path: Optional[Union[str, Path]] = None,
    ):
        self.site_templates_path = Path(site_templates_path)
        self.templates_path = Path(templates_path) if templates_path else self.site_templates_path

    def template_exists(self, path: str) -> bool:
        if not path:
            return False

        base = (self.templates_path / path.strip("/")).resolve()
        root = self.templates_path.resolve()
        # Refuse names that escape the templates root
        if root != base and root not in base.parents:
            return False

        candidates = [base]
        candidates.extend(base.with_name(base.name + ext) for ext in TEMPLATE_EXTENSIONS)
        candidates.extend(base / f"index{ext}" for ext in TEMPLATE_EXTENSIONS)
        return any(candidate.is_file() for candidate in candidates)

    @contextmanager
    def use_templates_path(self, path: Union[str, Path]) -> Iterator["FileSystemTemplateResolver"]:
        """Temporarily search templates under ``path``."""
        old_path = self.templates_path
        self.templates_path = Path(path)
        try:
            yield self
        finally:
            self.templates_path = old_path
