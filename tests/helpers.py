"""Synthetic frames and test doubles."""

from concurrent.futures import Executor, Future

import numpy as np

from coverscan.geometry import Frame

COVER_BOX = (150, 100, 650, 500)  # x0, y0, x1, y1 of the synthetic cover


def make_cover_frame(width=800, height=600, box=COVER_BOX):
    """Dark background with a bright rectangular 'cover'."""
    pixels = np.full((height, width, 3), 30, dtype=np.uint8)
    x0, y0, x1, y1 = box
    pixels[y0:y1, x0:x1] = (220, 210, 200)
    return Frame(pixels)


def make_noise_frame(width, height, seed=7):
    rng = np.random.default_rng(seed)
    return Frame(rng.integers(0, 256, size=(height, width, 3), dtype=np.uint8))


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


class FakeSource:
    """Frame source that records start/stop calls."""

    def __init__(self):
        self.callback = None
        self.starts = 0
        self.stops = 0

    def start(self, on_frame):
        self.callback = on_frame
        self.starts += 1

    def stop(self):
        self.stops += 1


class ManualExecutor(Executor):
    """Runs submitted jobs only when asked to."""

    def __init__(self):
        self.pending = []

    def submit(self, fn, *args, **kwargs):
        future = Future()
        self.pending.append((future, fn, args, kwargs))
        return future

    def run_all(self):
        while self.pending:
            future, fn, args, kwargs = self.pending.pop(0)
            try:
                future.set_result(fn(*args, **kwargs))
            except Exception as e:
                future.set_exception(e)
