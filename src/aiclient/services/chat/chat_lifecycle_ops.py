# Copyright (C) 2026 StableLlama
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
# Purpose: Defines the chat lifecycle ops unit so this responsibility stays isolated, testable, and easy to evolve.

"""Request/response lifecycle of one chat session.

``ChatSession`` owns the in-memory ``SessionState`` and the cached profile
list. It is the only place where reducer effects are executed: listeners are
notified synchronously after every transition and scroll listeners are called
through a coalescing timer so the view can settle first.

Only one request may be in flight. ``submit`` flips the waiting flag before its
first ``await``, so overlapping calls on the same event loop are rejected.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Mapping, Sequence

from aiclient.core.config import (
    DEFAULT_PENDING_TEXT,
    DEFAULT_SCROLL_DELAY_MS,
    DEFAULT_TIMEOUT_S,
    drop_unresolved_env,
    get_scroll_delay_s,
    load_client_config,
)
from aiclient.models.chat import ChatMessage, MessageStatus, SessionState
from aiclient.models.profiles import ApiProfile
from aiclient.services.chat.chat_error_ops import (
    describe_request_error,
    describe_stream_error,
)
from aiclient.services.chat.chat_selection_ops import (
    reconcile_model,
    resolve_selection,
)
from aiclient.services.chat.chat_state_ops import (
    ChatCleared,
    Effect,
    FragmentReceived,
    RequestFailed,
    ResponseReceived,
    SelectionChanged,
    SessionEvent,
    StreamCompleted,
    StreamFailed,
    UserSubmitted,
    reduce_session,
)
from aiclient.services.exceptions import NoProfileConfiguredError, NotFoundError
from aiclient.services.llm.llm import (
    ChatTransport,
    HttpChatTransport,
    extract_completion_content,
)
from aiclient.services.profiles.profile_store import ProfileStore
from aiclient.utils.debounce import CoalescingTimer

StateListener = Callable[[SessionState], None]
ScrollListener = Callable[[], None]


@dataclass(frozen=True)
class PendingReply:
    """A reply whose placeholder is in the transcript but not yet resolved."""

    profile: ApiProfile
    model: str
    user_text: str
    history: Sequence[ChatMessage]
    message_id: str
    use_streaming: bool


class ChatSession:
    def __init__(
        self,
        store: ProfileStore,
        transport: ChatTransport,
        *,
        use_streaming: bool = False,
        pending_text: str = DEFAULT_PENDING_TEXT,
        scroll_delay_s: float = DEFAULT_SCROLL_DELAY_MS / 1000,
        default_profiles: Iterable[Mapping[str, Any]] = (),
    ):
        self.store = store
        self.transport = transport
        self.pending_text = pending_text
        self._default_profiles = list(default_profiles)
        self._state = SessionState(use_streaming=use_streaming)
        self._profiles: List[ApiProfile] = []
        self._listeners: List[StateListener] = []
        self._scroll_listeners: List[ScrollListener] = []
        self._scroll_timer = CoalescingTimer(scroll_delay_s, self._emit_scroll)

    @classmethod
    def from_config(
        cls,
        config: Mapping[str, Any] | None = None,
        store: ProfileStore | None = None,
        transport: ChatTransport | None = None,
    ) -> "ChatSession":
        """Build a session from the client config and load the profile cache."""
        config = load_client_config() if config is None else config
        chat_cfg = config.get("chat") or {}
        timeout_s = config.get("timeout_s") or DEFAULT_TIMEOUT_S
        seeds = [
            {"timeout_s": timeout_s, **drop_unresolved_env(entry)}
            for entry in config.get("default_profiles") or ()
            if isinstance(entry, Mapping)
        ]
        session = cls(
            store or ProfileStore(),
            transport or HttpChatTransport(),
            use_streaming=bool(chat_cfg.get("use_streaming", False)),
            pending_text=str(chat_cfg.get("pending_text") or DEFAULT_PENDING_TEXT),
            scroll_delay_s=get_scroll_delay_s(config),
            default_profiles=seeds,
        )
        session.refresh_profiles()
        return session

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def profiles(self) -> Sequence[ApiProfile]:
        return tuple(self._profiles)

    def add_listener(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: StateListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def add_scroll_listener(self, listener: ScrollListener) -> None:
        self._scroll_listeners.append(listener)

    def close(self) -> None:
        """Drop pending scroll requests. An in-flight request is abandoned, not cancelled."""
        self._scroll_timer.cancel()
        self._listeners.clear()
        self._scroll_listeners.clear()

    # --------------- effects ---------------

    def _dispatch(self, event: SessionEvent) -> bool:
        self._state, effects = reduce_session(self._state, event)
        for effect in effects:
            if effect == Effect.NOTIFY:
                for listener in list(self._listeners):
                    listener(self._state)
            elif effect == Effect.SCROLL_TO_END:
                self._scroll_timer.request()
        return bool(effects)

    def _emit_scroll(self) -> None:
        for listener in list(self._scroll_listeners):
            listener()

    # --------------- profiles / selection ---------------

    def refresh_profiles(self) -> List[ApiProfile]:
        """Reload profiles from the store, seeding defaults into an empty store."""
        self._profiles = self.store.init_default_profiles(self._default_profiles)
        return list(self._profiles)

    def reload_profile(self, profile_id: int) -> ApiProfile:
        """Swap the cached copy of an edited profile for the stored record."""
        fresh = self.store.get_profile_by_id(profile_id)
        if fresh is None:
            raise NotFoundError(f"Profile {profile_id} not found")
        for index, cached in enumerate(self._profiles):
            if cached.id == profile_id:
                self._profiles[index] = fresh
                break
        else:
            self._profiles.append(fresh)
        return fresh

    def refresh_selection(self) -> tuple[ApiProfile, str]:
        """Re-fetch profiles and pull the current selection back onto them."""
        self.refresh_profiles()
        profile, model = resolve_selection(
            self._profiles, self._state.current_profile_id, self._state.current_model
        )
        if (profile.id, model) != (
            self._state.current_profile_id,
            self._state.current_model,
        ):
            self._dispatch(SelectionChanged(profile_id=profile.id, model=model))
        return profile, model

    def apply_settings(
        self,
        profile_id: int | None = None,
        model: str | None = None,
        use_streaming: bool | None = None,
    ) -> tuple[ApiProfile, str]:
        """Commit a settings choice; unknown models fall back to the first one."""
        self.refresh_profiles()
        if not self._profiles:
            raise NoProfileConfiguredError()
        if profile_id is None:
            profile, _ = resolve_selection(
                self._profiles,
                self._state.current_profile_id,
                self._state.current_model,
            )
        else:
            profile = next((p for p in self._profiles if p.id == profile_id), None)
            if profile is None:
                raise NotFoundError(f"Profile {profile_id} not found")
        wanted = model if model is not None else self._state.current_model
        chosen_model = reconcile_model(profile, wanted)
        self._dispatch(
            SelectionChanged(
                profile_id=profile.id, model=chosen_model, use_streaming=use_streaming
            )
        )
        return profile, chosen_model

    # --------------- transcript ---------------

    def clear_chat(self) -> bool:
        """Empty the transcript. Refused while a response is in flight."""
        return self._dispatch(ChatCleared())

    def start_reply(self, user_text: str) -> PendingReply | None:
        """Claim the single in-flight slot and append the user turn.

        Synchronous, so a caller holding the returned ``PendingReply`` owns the
        slot before it yields to the event loop. Returns None when the call is
        ignored (empty text or a response already in flight). Raises
        ``NoProfileConfiguredError`` before anything is appended when no
        profile exists.
        """
        if not user_text or self._state.is_waiting_for_response:
            return None

        if not self._profiles:
            self.refresh_profiles()
        profile, model = resolve_selection(
            self._profiles, self._state.current_profile_id, self._state.current_model
        )

        history = self._state.messages
        user_message = ChatMessage(content=user_text, is_user=True, model_name=model)
        placeholder = ChatMessage(
            content=self.pending_text,
            is_user=False,
            model_name=model,
            status=MessageStatus.PENDING,
        )
        self._dispatch(
            UserSubmitted(
                user_message=user_message,
                placeholder=placeholder,
                profile_id=profile.id,
                model=model,
            )
        )
        return PendingReply(
            profile=profile,
            model=model,
            user_text=user_text,
            history=history,
            message_id=placeholder.id,
            use_streaming=self._state.use_streaming,
        )

    async def finish_reply(self, pending: PendingReply) -> None:
        """Drive a started reply to a terminal state.

        Transport failures never escape; they end up as the assistant message
        text.
        """
        args = (
            pending.profile,
            pending.model,
            pending.user_text,
            pending.history,
            pending.message_id,
        )
        if pending.use_streaming:
            await self._run_stream(*args)
        else:
            await self._run_single(*args)

    async def submit(self, user_text: str) -> bool:
        """Send ``user_text`` and drive the reply to a terminal state.

        Returns False when the call was ignored; see ``start_reply``.
        """
        pending = self.start_reply(user_text)
        if pending is None:
            return False
        await self.finish_reply(pending)
        return True

    async def _run_stream(
        self,
        profile: ApiProfile,
        model: str,
        user_text: str,
        history: Sequence[ChatMessage],
        message_id: str,
    ) -> None:
        accumulated = ""
        try:
            fragments = self.transport.send_stream_chat_request(
                profile, model, user_text, history
            )
            async for fragment in fragments:
                accumulated += fragment
                self._dispatch(FragmentReceived(message_id, accumulated))
        except Exception as e:
            self._dispatch(
                StreamFailed(message_id, accumulated, describe_stream_error(e))
            )
            return
        self._dispatch(StreamCompleted(message_id, accumulated))

    async def _run_single(
        self,
        profile: ApiProfile,
        model: str,
        user_text: str,
        history: Sequence[ChatMessage],
        message_id: str,
    ) -> None:
        try:
            response = await self.transport.send_chat_request(
                profile, model, user_text, history
            )
            content = extract_completion_content(response)
        except Exception as e:
            self._dispatch(RequestFailed(message_id, describe_request_error(e)))
            return
        self._dispatch(ResponseReceived(message_id, content))
