"""multipathd command dispatcher.

A command line is tokenized and each token is matched against the keyword
table (exact match first, then a unique prefix). Keywords taking a
parameter consume the following token. The OR of all keyword codes is the
command fingerprint, and the handler registered for exactly that
fingerprint produces the reply. Anything else gets the generated help text.

Tables belong to a Dispatcher instance; nothing is module global.
"""

from __future__ import annotations

import shlex
from dataclasses import dataclass
from enum import IntFlag
from typing import Any, Callable, Optional

VERSION_STRING = "multipathd (dmmp mock daemon)\n"


class KeyCode(IntFlag):
    LIST = 1 << 0
    ADD = 1 << 1
    DEL = 1 << 2
    SWITCH = 1 << 3
    SUSPEND = 1 << 4
    RESUME = 1 << 5
    REINSTATE = 1 << 6
    FAIL = 1 << 7
    RESIZE = 1 << 8
    RESET = 1 << 9
    RELOAD = 1 << 10
    FORCEQ = 1 << 11
    DISABLEQ = 1 << 12
    RESTOREQ = 1 << 13
    PATHS = 1 << 14
    MAPS = 1 << 15
    GROUPS = 1 << 16
    PATH = 1 << 17
    MAP = 1 << 18
    GROUP = 1 << 19
    RECONFIGURE = 1 << 20
    DAEMON = 1 << 21
    STATUS = 1 << 22
    STATS = 1 << 23
    TOPOLOGY = 1 << 24
    CONFIG = 1 << 25
    BLACKLIST = 1 << 26
    DEVICES = 1 << 27
    RAW = 1 << 28
    WILDCARDS = 1 << 29
    QUIT = 1 << 30
    SHUTDOWN = 1 << 31
    GETPRSTATUS = 1 << 32
    SETPRSTATUS = 1 << 33
    UNSETPRSTATUS = 1 << 34
    FMT = 1 << 35


K = KeyCode

# (word, code, takes a parameter)
DEFAULT_KEYWORDS: list[tuple[str, KeyCode, bool]] = [
    ("list", K.LIST, False),
    ("show", K.LIST, False),
    ("add", K.ADD, False),
    ("remove", K.DEL, False),
    ("del", K.DEL, False),
    ("switch", K.SWITCH, False),
    ("switchgroup", K.SWITCH, False),
    ("suspend", K.SUSPEND, False),
    ("resume", K.RESUME, False),
    ("reinstate", K.REINSTATE, False),
    ("fail", K.FAIL, False),
    ("resize", K.RESIZE, False),
    ("reset", K.RESET, False),
    ("reload", K.RELOAD, False),
    ("forcequeueing", K.FORCEQ, False),
    ("disablequeueing", K.DISABLEQ, False),
    ("restorequeueing", K.RESTOREQ, False),
    ("paths", K.PATHS, False),
    ("maps", K.MAPS, False),
    ("multipaths", K.MAPS, False),
    ("groups", K.GROUPS, False),
    ("path", K.PATH, True),
    ("map", K.MAP, True),
    ("multipath", K.MAP, True),
    ("group", K.GROUP, True),
    ("reconfigure", K.RECONFIGURE, False),
    ("daemon", K.DAEMON, False),
    ("status", K.STATUS, False),
    ("stats", K.STATS, False),
    ("topology", K.TOPOLOGY, False),
    ("config", K.CONFIG, False),
    ("blacklist", K.BLACKLIST, False),
    ("devices", K.DEVICES, False),
    ("raw", K.RAW, False),
    ("wildcards", K.WILDCARDS, False),
    ("quit", K.QUIT, False),
    ("exit", K.QUIT, False),
    ("shutdown", K.SHUTDOWN, False),
    ("getprstatus", K.GETPRSTATUS, False),
    ("setprstatus", K.SETPRSTATUS, False),
    ("unsetprstatus", K.UNSETPRSTATUS, False),
    ("format", K.FMT, True),
]

DEFAULT_FINGERPRINTS: list[int] = [
    K.LIST | K.PATHS,
    K.LIST | K.PATHS | K.FMT,
    K.LIST | K.PATHS | K.RAW | K.FMT,
    K.LIST | K.PATH,
    K.LIST | K.STATUS,
    K.LIST | K.DAEMON,
    K.LIST | K.MAPS,
    K.LIST | K.MAPS | K.STATUS,
    K.LIST | K.MAPS | K.STATS,
    K.LIST | K.MAPS | K.FMT,
    K.LIST | K.MAPS | K.RAW | K.FMT,
    K.LIST | K.MAPS | K.TOPOLOGY,
    K.LIST | K.GROUPS,
    K.LIST | K.GROUPS | K.RAW | K.FMT,
    K.LIST | K.TOPOLOGY,
    K.LIST | K.MAP | K.TOPOLOGY,
    K.LIST | K.CONFIG,
    K.LIST | K.BLACKLIST,
    K.LIST | K.DEVICES,
    K.LIST | K.WILDCARDS,
    K.ADD | K.PATH,
    K.DEL | K.PATH,
    K.ADD | K.MAP,
    K.DEL | K.MAP,
    K.SWITCH | K.MAP | K.GROUP,
    K.RECONFIGURE,
    K.SUSPEND | K.MAP,
    K.RESUME | K.MAP,
    K.RESIZE | K.MAP,
    K.RESET | K.MAP,
    K.RELOAD | K.MAP,
    K.DISABLEQ | K.MAP,
    K.RESTOREQ | K.MAP,
    K.DISABLEQ | K.MAPS,
    K.RESTOREQ | K.MAPS,
    K.REINSTATE | K.PATH,
    K.FAIL | K.PATH,
    K.QUIT,
    K.SHUTDOWN,
    K.GETPRSTATUS | K.MAP,
    K.SETPRSTATUS | K.MAP,
    K.UNSETPRSTATUS | K.MAP,
    K.FORCEQ | K.DAEMON,
    K.RESTOREQ | K.DAEMON,
]


class CliSyntaxError(ValueError):
    """Unknown or ambiguous keyword."""


class CliNoParamError(CliSyntaxError):
    """A keyword that takes a parameter ended the command."""


@dataclass
class Keyword:
    word: str
    code: KeyCode
    has_param: bool = False


@dataclass
class CommandWord:
    """One matched keyword of a command line, with its bound parameter."""

    code: KeyCode
    has_param: bool = False
    param: Optional[str] = None


HandlerFunc = Callable[[list[CommandWord], Any], str]


@dataclass
class Handler:
    fingerprint: int
    fn: Optional[HandlerFunc] = None


class Dispatcher:
    """Keyword table plus fingerprint -> handler table."""

    def __init__(self) -> None:
        self.keys: list[Keyword] = []
        self.handlers: list[Handler] = []

    @classmethod
    def default(cls) -> Dispatcher:
        """Dispatcher with the daemon's keywords and every known command
        registered without a callback."""
        dispatcher = cls()
        dispatcher.load_keys()
        for fp in DEFAULT_FINGERPRINTS:
            dispatcher.add_handler(fp, None)
        return dispatcher

    # -- tables ------------------------------------------------------------

    def add_key(self, word: str, code: KeyCode, has_param: bool = False) -> None:
        self.keys.append(Keyword(word, code, has_param))

    def load_keys(self) -> None:
        for word, code, has_param in DEFAULT_KEYWORDS:
            self.add_key(word, code, has_param)

    def add_handler(self, fingerprint: int, fn: Optional[HandlerFunc]) -> None:
        self.handlers.append(Handler(int(fingerprint), fn))

    def find_handler(self, fingerprint: int) -> Optional[Handler]:
        for h in self.handlers:
            if h.fingerprint == fingerprint:
                return h
        return None

    def set_handler_callback(self, fingerprint: int, fn: HandlerFunc) -> bool:
        """Attach ``fn`` to a registered fingerprint. False if unknown."""
        h = self.find_handler(fingerprint)
        if h is None:
            return False
        h.fn = fn
        return True

    def handler(self, fingerprint: int) -> Callable[[HandlerFunc], HandlerFunc]:
        """Decorator form of set_handler_callback / add_handler.

        Usage:
            @dispatcher.handler(KeyCode.LIST | KeyCode.MAPS)
            def show_maps(cmdvec, data):
                return "..."
        """
        def decorator(fn: HandlerFunc) -> HandlerFunc:
            if not self.set_handler_callback(fingerprint, fn):
                self.add_handler(fingerprint, fn)
            return fn
        return decorator

    # -- parsing -----------------------------------------------------------

    def find_key(self, word: str) -> Optional[Keyword]:
        """Exact match, else the single keyword ``word`` is a prefix of."""
        shortcut: Optional[Keyword] = None
        for kw in self.keys:
            if kw.word == word:
                return kw
        for kw in self.keys:
            if word and kw.word.startswith(word):
                if shortcut is not None:
                    return None  # ambiguous
                shortcut = kw
        return shortcut

    def get_cmdvec(self, cmd: str) -> list[CommandWord]:
        """Tokenize a command line into matched keywords.

        Raises CliSyntaxError on an unknown word and CliNoParamError when a
        parameter is missing.
        """
        try:
            tokens = shlex.split(cmd)
        except ValueError as exc:
            raise CliSyntaxError(str(exc)) from exc

        cmdvec: list[CommandWord] = []
        want_param = False
        for token in tokens:
            if want_param:
                cmdvec[-1].param = token
                want_param = False
                continue
            kw = self.find_key(token)
            if kw is None:
                raise CliSyntaxError(f"Unknown or ambiguous keyword: {token!r}")
            cmdvec.append(CommandWord(kw.code, kw.has_param))
            want_param = kw.has_param
        if want_param:
            raise CliNoParamError("Missing parameter")
        return cmdvec

    @staticmethod
    def fingerprint(cmdvec: list[CommandWord]) -> int:
        fp = 0
        for cw in cmdvec:
            fp |= int(cw.code)
        return fp

    @staticmethod
    def get_keyparam(cmdvec: list[CommandWord], code: KeyCode) -> Optional[str]:
        for cw in cmdvec:
            if cw.code == code:
                return cw.param
        return None

    def genhelp(self) -> str:
        """Help text listing every registered command."""
        out = [VERSION_STRING, "CLI commands reference:\n"]
        for h in self.handlers:
            fp = h.fingerprint
            for kw in self.keys:
                if not int(kw.code) & fp:
                    continue
                fp &= ~int(kw.code)
                out.append(f" {kw.word}")
                for alias in self.keys:
                    if alias.code == kw.code and alias is not kw:
                        out.append(f"|{alias.word}")
                if kw.has_param:
                    out.append(f" ${kw.word}")
            out.append("\n")
        return "".join(out)

    def parse_cmd(self, cmd: str, data: Any = None) -> str:
        """Run the handler matching ``cmd`` and return its reply."""
        try:
            cmdvec = self.get_cmdvec(cmd)
        except CliSyntaxError:
            return self.genhelp()

        h = self.find_handler(self.fingerprint(cmdvec))
        if h is None or h.fn is None:
            return self.genhelp()
        return h.fn(cmdvec, data)
