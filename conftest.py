import io
import pytest

from hogwarts_archive.archive import Archive
from hogwarts_archive.commands import CommandDispatcher
from hogwarts_archive.ui_helpers import OUTPUT_MODE_ENV, BlockWriter

COLLECTION_ROWS = [
    "serialNumber,title,inventor,type",
    "1,Basic Charms,Miranda Goshawk,Charm",
    "2,Basic Curses,Miranda Goshawk,Curse",
    "3,Advanced Potion-Making,Libatius Borage,Potion",
    "4,basic charms,miranda goshawk,charm",
]


@pytest.fixture(autouse=True)
def plain_output(monkeypatch):
    # Each test starts from the default output mode
    monkeypatch.delenv(OUTPUT_MODE_ENV, raising=False)


@pytest.fixture
def archive():
    return Archive(first_student_id=100000)


@pytest.fixture
def collection_file(tmp_path):
    path = tmp_path / "collection.csv"
    path.write_text("\n".join(COLLECTION_ROWS) + "\n", encoding="utf-8")
    return str(path)


class Session:
    """Drives a dispatcher and collects what it printed."""

    def __init__(self, archive):
        self.out = io.StringIO()
        self.archive = archive
        self.dispatcher = CommandDispatcher(archive, BlockWriter(stream=self.out, tag="user: ", mode="plain"))

    def send(self, *lines):
        for line in lines:
            self.dispatcher.handle(line)
        return self

    def reply(self, line):
        """Send one command and return the text of the block it produced (without the tag)."""
        before = len(self.out.getvalue())
        self.dispatcher.handle(line)
        text = self.out.getvalue()[before:]
        if text.startswith("\n"):
            text = text[1:]
        if text.startswith("user: "):
            text = text[len("user: "):]
        return text[:-1] if text.endswith("\n") else text

    @property
    def output(self):
        return self.out.getvalue()


@pytest.fixture
def session(archive):
    return Session(archive)
