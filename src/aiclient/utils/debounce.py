# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Defines the debounce unit so this responsibility stays isolated, testable, and easy to evolve."""

from __future__ import annotations

import asyncio
from typing import Callable


class CoalescingTimer:
    """Run ``callback`` once, ``delay_s`` after the first of a burst of requests.

    Requests made while a call is already scheduled are folded into it.
    Without a running event loop the callback runs immediately.
    """

    def __init__(self, delay_s: float, callback: Callable[[], None]):
        self.delay_s = delay_s
        self._callback = callback
        self._handle: asyncio.TimerHandle | None = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def request(self) -> None:
        if self._handle is not None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._callback()
            return
        self._handle = loop.call_later(self.delay_s, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        self._callback()
