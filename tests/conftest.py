"""Shared pytest fixtures for IOU Kit tests.

Every fixture builds its components from an explicit ``Settings`` and a
private ``EventBus`` so tests never depend on the environment or leak
handlers into the global bus.
"""
import pytest

from ioukit.compliance import ComplianceAssessor
from ioukit.core import EntityMention, EntityType, EventBus, Settings, reset_settings
from ioukit.graph import KnowledgeGraph
from ioukit.ner import EntityExtractor
from ioukit.semantic import VectorIndex
from ioukit.suggestions import MetadataSuggester


@pytest.fixture(autouse=True)
def _fresh_settings():
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def bus():
    return EventBus()


class Recorder:
    """Collects emitted events as ``(name, kwargs)`` pairs."""

    def __init__(self, bus):
        self.bus = bus
        self.events = []

    def watch(self, name):
        self.bus.on(name, lambda **kw: self.events.append((name, kw)))

    def named(self, name):
        return [kw for event, kw in self.events if event == name]


@pytest.fixture
def recorder(bus):
    return Recorder(bus)


@pytest.fixture
def extractor(settings):
    return EntityExtractor(settings=settings)


@pytest.fixture
def graph(settings, bus):
    return KnowledgeGraph(settings=settings, events=bus)


@pytest.fixture
def index(settings):
    return VectorIndex(settings=settings)


@pytest.fixture
def assessor(settings):
    return ComplianceAssessor(settings=settings)


@pytest.fixture
def suggester(settings, extractor, graph, index, assessor):
    return MetadataSuggester(
        extractor=extractor, graph=graph, index=index, assessor=assessor, settings=settings,
    )


@pytest.fixture
def make_mention():
    """Build mentions by hand; offsets default to a running position."""
    position = {"next": 0}

    def _make(normalized, entity_type=EntityType.ORGANIZATION, start=None,
              document_id=None, confidence=0.9, text=None):
        if start is None:
            start = position["next"]
        end = start + len(text or normalized)
        position["next"] = end + 1
        return EntityMention(
            text=text or normalized,
            normalized=normalized,
            entity_type=entity_type,
            document_id=document_id,
            start=start,
            end=end,
            confidence=confidence,
        )

    return _make
