import json
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

import pytest

from trine.config.models import BootstrapConfig
from trine.engine.errors import EngineError, ImageMissingError
from trine.images.tagger import ImageTagger


class FakeEngine:
    """
    In-memory stand-in for docker.

    images maps tag -> {path: content}. containers is the simulated container
    namespace; a failing inject/run leaves its container behind, the same way
    a failed `docker commit` would.
    """

    def __init__(self, tagger, kinds, fail_on: Optional[Tuple[str, int]] = None):
        self.tagger = tagger
        self.kinds = kinds
        self.fail_on = fail_on
        self.images: Dict[str, Dict[str, bytes]] = {}
        self.containers: Set[str] = set()
        self.calls: List[tuple] = []
        self.swept: List[List[str]] = []
        self._live: Set[str] = set()
        self._counts: Dict[str, int] = {}
        self._seq = 0

    def _maybe_fail(self, op):
        n = self._counts[op] = self._counts.get(op, 0) + 1
        if self.fail_on == (op, n):
            raise EngineError(f"simulated {op} failure #{n}", returncode=1)

    def _start(self, tag):
        if tag not in self.images:
            raise ImageMissingError(f"no image {tag}")
        self._seq += 1
        name = f"fake-transient-{self._seq}"
        self.containers.add(name)
        self._live.add(name)
        return name

    def _remove(self, name):
        self.containers.discard(name)
        self._live.discard(name)

    # ContainerEngine

    def build(self, hostname, identity):
        self.calls.append(("build", hostname, identity))
        self._maybe_fail("build")
        tag = self.tagger.tag(identity)
        self.images[tag] = {
            k.path_for(identity): f"{k.name}-of-h{identity}".encode() for k in self.kinds
        }

    def image_exists(self, tag):
        return tag in self.images

    def extract(self, tag, path):
        self.calls.append(("extract", tag, path))
        self._maybe_fail("extract")
        try:
            return self.images[tag][path]
        except KeyError:
            raise EngineError(f"cat: {path}: No such file or directory", returncode=1)

    def inject(self, tag, path, data):
        self.calls.append(("inject", tag, path))
        name = self._start(tag)
        self._maybe_fail("inject")
        self.images[tag] = {**self.images[tag], path: data}
        self._remove(name)
        return tag

    def run_in_container(self, tag, argv):
        self.calls.append(("run", tag, list(argv)))
        name = self._start(tag)
        self._maybe_fail("run")
        self.images[tag] = {**self.images[tag], "/etc/ipa/network.toml": " ".join(argv).encode()}
        self._remove(name)
        return tag

    def save(self, tag, archive):
        archive = Path(archive)
        self.calls.append(("save", tag, str(archive)))
        self._maybe_fail("save")
        archive.parent.mkdir(parents=True, exist_ok=True)
        archive.write_text(json.dumps({"tag": tag, "files": sorted(self.images[tag])}))
        return archive

    def live_transients(self):
        return sorted(self._live)

    def release_transients(self):
        names = sorted(self._live)
        for name in names:
            self._remove(name)
        return names

    def sweep_transients(self):
        leftovers = sorted(self.containers)
        self.containers.clear()
        self._live.clear()
        self.swept.append(leftovers)
        return leftovers

    def ops(self, op):
        return [c for c in self.calls if c[0] == op]


class Capture:
    def __init__(self): self.events = []
    def notify(self, ev): self.events.append(ev)

    def kinds(self):
        return [e.__class__.__name__ for e in self.events]


@pytest.fixture
def cfg():
    return BootstrapConfig()


@pytest.fixture
def tagger():
    return ImageTagger(namespace="private-attribution", project="ipa", revision="0123456789")


@pytest.fixture
def fake_engine(cfg, tagger):
    return FakeEngine(tagger, cfg.artifact_kinds)


@pytest.fixture
def make_engine(cfg, tagger):
    def _make(fail_on=None):
        return FakeEngine(tagger, cfg.artifact_kinds, fail_on=fail_on)
    return _make


@pytest.fixture
def capture():
    return Capture()
