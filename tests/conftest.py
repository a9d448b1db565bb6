"""
Pytest Configuration and Shared Fixtures
=========================================
Common fixtures and configuration for all tests.
"""

import sys
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from citekit.config import BibliographyConfig
from citekit.index.storage import InMemoryNodeStore
from citekit.index.tree import InMemoryTree
from citekit.records.repository import RecordRepository
from citekit.records.schema import Name, RecordBuilder, RecordType


# =============================================================================
# Fixtures: Sample BibTeX
# =============================================================================

SAMPLE_BIBTEX = """
@article{smith2020,
  author = {Smith, John and van der Berg, Anna},
  title = {A {Study} of Things},
  journal = {Journal of Things},
  volume = {12},
  number = {3},
  pages = {100--120},
  year = {2020},
  month = {mar},
  doi = {10.1000/xyz123}
}

@book{doe2019,
  author = {Doe, Jane},
  title = {The Book},
  publisher = {Acme Press},
  address = {Paris},
  year = 2019
}

@inproceedings{lee2021,
  author = {Kim Lee},
  title = {Fast Methods},
  booktitle = {Proceedings of the Conference},
  eventtitle = {Conf 2021},
  eventdate = {2021-06-01/2021-06-03},
  venue = {Lyon},
  date = {2021-06}
}
"""


@pytest.fixture
def sample_bibtex():
    """Three entries of different types."""
    return SAMPLE_BIBTEX


# =============================================================================
# Fixtures: Records
# =============================================================================

@pytest.fixture
def make_record():
    """Build a minimal record with a title and one author."""
    def _make(record_id: str, title: str = "Title", family: str = "Author", record_type=RecordType.BOOK):
        return (
            RecordBuilder(record_type, record_id)
            .set("title", title)
            .set("author", [Name(family=family, given="A.")])
            .build()
        )
    return _make


@pytest.fixture
def repository():
    return RecordRepository()


# =============================================================================
# Fixtures: Tree and Storage
# =============================================================================

@pytest.fixture
def tree():
    """root -> (a -> a1), b, bib"""
    t = InMemoryTree()
    t.add_node("root")
    t.add_node("a", parent="root")
    t.add_node("a1", parent="a")
    t.add_node("b", parent="root")
    t.add_node("bib", parent="root")
    return t


@pytest.fixture
def store():
    return InMemoryNodeStore()


@pytest.fixture
def bib_config():
    return BibliographyConfig(style="ieee", locale="en-US", scope="cited", extra_scopes=())


# =============================================================================
# Markers Registration
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests without external deps")
    config.addinivalue_line("markers", "integration: Tests requiring external services")
    config.addinivalue_line("markers", "slow: Slow running tests")
