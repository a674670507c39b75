import os

# Qt widgets need a platform plugin even without a display
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest

from inkmark.config import Settings
from inkmark.core.annotations.layers import LayerIndex
from inkmark.core.annotations.models import Layer
from inkmark.core.annotations.store import AnnotationStore
from inkmark.core.annotations.undo_redo import HistoryManager
from inkmark.core.render.renderer import RenderEngine
from inkmark.core.tools.state_machine import ToolStateMachine


@pytest.fixture(scope="session")
def qapp():
    from PyQt5.QtWidgets import QApplication

    app = QApplication.instance() or QApplication([])
    yield app


@pytest.fixture
def settings(tmp_path):
    return Settings(autosave_debounce_ms=20, data_dir=str(tmp_path), _env_file=None)


@pytest.fixture
def store():
    return AnnotationStore()


@pytest.fixture
def layers():
    return LayerIndex([Layer(name="Markup", id="layer-a"), Layer(name="Review", id="layer-b")])


@pytest.fixture
def machine(store, layers):
    engine = RenderEngine(store, layers)
    return ToolStateMachine(store, HistoryManager(), layers, engine, user="alice")
