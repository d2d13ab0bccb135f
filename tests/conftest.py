import pytest
import sys
from pathlib import Path
from PIL import Image

# Add src to sys.path so we can import photobook_toolkit
SRC_PATH = Path(__file__).resolve().parent.parent / "src"
if SRC_PATH.as_posix() not in sys.path:
    sys.path.insert(0, SRC_PATH.as_posix())

from photobook_toolkit.core.models import (  # noqa: E402
    FileAsset,
    LayoutBox,
    LayoutTemplate,
    ProductTemplate,
    Rect,
    Size,
)


# Common test fixtures
@pytest.fixture
def sample_image(tmp_path: Path):
    """Create a simple landscape test image."""
    img = Image.new("RGB", (200, 100), color="white")
    img_path = tmp_path / "sample.png"
    img.save(img_path)
    return img_path


@pytest.fixture
def asset_factory(tmp_path: Path):
    """
    Factory creating FileAssets backed by a small JPEG.

    The declared size is independent of the tiny file on disk so geometry
    tests can use realistic photo dimensions.
    """
    def _create(identifier: str, width: float = 400, height: float = 300) -> FileAsset:
        path = tmp_path / f"{identifier}.jpg"
        if not path.exists():
            Image.new("RGB", (8, 6), color="blue").save(path, format="JPEG")
        return FileAsset(identifier=identifier, path=path, size=Size(width, height))
    return _create


@pytest.fixture
def cover_layout():
    return LayoutTemplate(
        id=1,
        category="cover",
        image_box=LayoutBox(id=100, rect=Rect(0.0, 0.0, 1.0, 1.0)),
    )


@pytest.fixture
def landscape_layout():
    return LayoutTemplate(
        id=10,
        category="landscape",
        image_box=LayoutBox(id=110, rect=Rect(0.1, 0.1, 0.8, 0.5)),
    )


@pytest.fixture
def portrait_layout():
    return LayoutTemplate(
        id=11,
        category="portrait",
        image_box=LayoutBox(id=111, rect=Rect(0.1, 0.1, 0.5, 0.8)),
    )


@pytest.fixture
def text_layout():
    return LayoutTemplate(
        id=12,
        category="text",
        text_box=LayoutBox(id=112, rect=Rect(0.1, 0.4, 0.8, 0.2)),
    )


@pytest.fixture
def product(cover_layout, landscape_layout, portrait_layout, text_layout):
    """Square 300x300 product using the layout fixtures."""
    return ProductTemplate(
        id=1,
        template_id="hdbook_127x127",
        name="Square",
        cover_size=Size(300, 300),
        page_size=Size(300, 300),
        cover_layout_ids=(cover_layout.id,),
        layout_ids=(landscape_layout.id, portrait_layout.id, text_layout.id),
    )


@pytest.fixture
def content_layouts(landscape_layout, portrait_layout, text_layout):
    return [landscape_layout, portrait_layout, text_layout]
