import base64
import json
import sys
from pathlib import Path

import httpx
import pytest

SRC_DIR = Path(__file__).resolve().parent.parent / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from scriptura.errors import StorageError
from scriptura.infrastructure.bible_com import BibleComClient
from scriptura.infrastructure.tts.base import SpeechProvider
from scriptura.services.content_cache import ContentCache

UPSTREAM = "https://upstream.test"
TOKEN = "build-abc123"
LANDING_PAGE = (
    "<html><head>"
    f'<script src="/_next/static/{TOKEN}/_buildManifest.js" defer></script>'
    "</head><body></body></html>"
)

# Two headings, five verses; verse 3 is split across two fragments of one paragraph.
GENESIS_1_MARKUP = """
<div class="version vid149 iso6393spa" data-vid="149" data-iso6393="spa">
  <div class="book bkGEN">
    <div class="chapter ch1" data-usfm="GEN.1">
      <div class="label">1</div>
      <div class="s"><span class="heading">La creación</span></div>
      <div class="p">
        <span class="verse v1" data-usfm="GEN.1.1"><span class="label">1</span><span class="content">En el principio creó Dios los cielos y la tierra.</span></span>
        <span class="verse v2" data-usfm="GEN.1.2"><span class="label">2</span><span class="content">Y la tierra estaba desordenada y vacía,</span><span class="note f"><span class="label">#</span><span class="body">O, sin forma.</span></span></span>
        <span class="verse v3" data-usfm="GEN.1.3"><span class="label">3</span><span class="content">Y dijo Dios:</span></span>
        <span class="verse v3" data-usfm="GEN.1.3"><span class="content">Sea la luz; y fue la luz.</span></span>
      </div>
      <div class="s1"><span class="heading">El primer día</span></div>
      <div class="q">
        <span class="verse v4" data-usfm="GEN.1.4"><span class="label">4</span><span class="content">Y vio Dios que la luz era buena;</span></span>
        <span class="verse v5" data-usfm="GEN.1.5"><span class="label">5</span><span class="content">Y llamó Dios a la luz Día.</span></span>
      </div>
    </div>
  </div>
</div>
"""

REFERENCE_MARKUP = """
<div class="version" data-vid="149" data-iso6393="spa">
  <div class="book bkPSA">
    <div class="chapter ch23" data-usfm="PSA.23">
      <div class="s"><span class="heading">Jehová es mi pastor</span></div>
      <div class="r"><span class="heading">(Jn. 10.11</span><span class="heading">)</span></div>
      <div class="p">
        <span class="verse v1" data-usfm="PSA.23.1"><span class="label">1</span><span class="content">Jehová es mi pastor; nada me faltará.</span></span>
      </div>
    </div>
  </div>
</div>
"""


def chapter_page(markup: str, title: str = "Génesis 1", usfm: str = "GEN.1") -> dict:
    """Upstream chapter data document wrapping *markup*."""
    return {
        "pageProps": {
            "usfm": usfm,
            "locale": "es",
            "chapterInfo": {
                "content": markup,
                "reference": {"human": title},
                "previous": None,
                "next": {"usfm": ["GEN.2"], "human": "Génesis 2"},
                "copyright": {"text": "Reina-Valera 1960"},
            },
            "versionData": {
                "language": {"iso_639_1": "es", "text_direction": "ltr"},
                "publisher": {"name": "Sociedades Bíblicas Unidas"},
                "reader_footer": {"text": "Usado con permiso"},
                "reader_footer_url": "https://example.test/footer",
            },
        }
    }


class FakeUpstream:
    """Scriptable upstream site served through ``httpx.MockTransport``."""

    def __init__(self, chapter_responses=None, landing_pages=None):
        self.chapter_responses = list(chapter_responses or [])
        self.landing_pages = list(landing_pages or [LANDING_PAGE])
        self.version_response = None
        self.versions_response = None
        self.configuration_response = None
        self.requests: list[httpx.Request] = []

    def paths(self, fragment: str) -> list[str]:
        return [r.url.path for r in self.requests if fragment in r.url.path]

    @property
    def chapter_fetches(self) -> int:
        return len(self.paths("/bible/"))

    @property
    def landing_fetches(self) -> int:
        return len([r for r in self.requests if r.url.path == "/"])

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == "/":
            page = self.landing_pages.pop(0) if len(self.landing_pages) > 1 else self.landing_pages[0]
            return httpx.Response(200, text=page)
        if "/bible/" in path and path.startswith("/_next/data/"):
            return self._next(self.chapter_responses)
        if "/versions/" in path and path.startswith("/_next/data/"):
            return self._as_response(self.version_response)
        if path == "/api/bible/versions":
            return self._as_response(self.versions_response)
        if path == "/api/bible/configuration":
            return self._as_response(self.configuration_response)
        return httpx.Response(500)

    def _next(self, responses: list) -> httpx.Response:
        item = responses.pop(0) if len(responses) > 1 else responses[0]
        return self._as_response(item)

    @staticmethod
    def _as_response(item) -> httpx.Response:
        if isinstance(item, httpx.Response):
            return item
        if isinstance(item, Exception):
            raise item
        if item is None:
            return httpx.Response(404)
        return httpx.Response(200, json=item)

    def client(self) -> BibleComClient:
        transport = httpx.MockTransport(self.handler)
        return BibleComClient(base_url=UPSTREAM, client=httpx.AsyncClient(transport=transport))


class FakeStorage:
    """In-memory stand-in for ``StorageClient`` with the same contract."""

    def __init__(self):
        self.objects: dict[str, bytes] = {}
        self.content_types: dict[str, str] = {}
        self.uploads: list[str] = []
        self.fail_reads = False
        self.fail_writes = False

    def public_url(self, key: str) -> str:
        return f"https://cdn.test/{key}"

    async def exists(self, key: str) -> bool:
        if self.fail_reads:
            raise StorageError("storage unavailable")
        return key in self.objects

    async def download_bytes(self, key: str) -> bytes:
        if self.fail_reads:
            raise StorageError("storage unavailable")
        return self.objects[key]

    async def upload_file(self, key: str, file_path, content_type: str) -> str:
        path = Path(file_path)
        try:
            self.uploads.append(key)
            if self.fail_writes:
                raise StorageError(f"Upload failed for key {key}")
            self.objects[key] = path.read_bytes()
            self.content_types[key] = content_type
            return self.public_url(key)
        finally:
            path.unlink(missing_ok=True)

    def json(self, key: str):
        return json.loads(self.objects[key])


class FakeSpeechProvider(SpeechProvider):
    """Returns Base64 of ``b"audio:<chunk>"``; chunk indexes in ``fail_on`` raise."""

    name = "fake"

    def __init__(self, fail_on=(), error: Exception | None = None):
        self.fail_on = set(fail_on)
        self.error = error
        self.calls: list[str] = []

    async def synth(self, *, text, voice, format="mp3") -> str:
        index = len(self.calls)
        self.calls.append(text)
        if index in self.fail_on:
            from scriptura.errors import SynthesisError

            raise self.error or SynthesisError(f"chunk {index} failed")
        return base64.b64encode(f"audio:{text}".encode()).decode()


@pytest.fixture
def fake_storage():
    return FakeStorage()


@pytest.fixture
def content_cache(fake_storage, tmp_path):
    return ContentCache(fake_storage, staging_dir=tmp_path / "cache-staging")
