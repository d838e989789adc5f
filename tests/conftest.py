import pytest

from fakes import FakeUploader


@pytest.fixture
def uploader():
    return FakeUploader()
