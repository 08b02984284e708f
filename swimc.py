#!/usr/bin/env python3
"""swimc: swim practice notation compiler.

Turns practice text ("4x100 Free @ 1:30", repeat blocks, breaks, group
splits) into yardage, durations, wall-clock times and stroke/style stats.
"""
import sys, os, json, argparse, logging, re, textwrap
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, ClassVar, Dict, List, NewType, Optional, Tuple, Union
from lark import Lark, Transformer
from lark.exceptions import LarkError

log = logging.getLogger("swimc")

FALLBACK_PACE_SECONDS = 90      # assumed 1:30 per 100 when a line has no interval
FALLBACK_PACE_DISTANCE = 100
MAX_EXPANSION_PASSES = 10
MAX_EXPANDED_CHARS = 200_000
DEFAULT_START = "06:00"
CHOICE_STROKE = "Choice"
SWIM_STYLE = "Swim"
DAY_SECONDS = 86400
ACRONYMS_ENV = "SWIMC_ACRONYMS"


class SwimcError(Exception):
    pass

class AcronymConfigError(SwimcError):
    pass

class PracticeFormatError(SwimcError):
    pass


# ---------------------------------------------------------------------------
# Time codec

DURATION_GRAMMAR = r"""
start: ":" INT              -> only_s
     | INT ":" INT          -> mmss
     | INT ":" INT ":" INT  -> hhmmss
     | INT                  -> bare_s

%import common.INT
%import common.WS
%ignore WS
"""

CLOCK_GRAMMAR = r"""
start: HOUR ":" MINUTE seconds? meridiem?
seconds: ":" MINUTE
meridiem: AM | PM

HOUR: /\d{1,2}/
MINUTE: /\d{2}/
AM: /am/i
PM: /pm/i

%import common.WS
%ignore WS
"""

class DurationToSeconds(Transformer):
    def only_s(self, xs): return int(xs[0])
    def mmss(self, xs):   return int(xs[0])*60 + int(xs[1])
    def hhmmss(self, xs): return int(xs[0])*3600 + int(xs[1])*60 + int(xs[2])
    def bare_s(self, xs): return int(xs[0])

class ClockToSeconds(Transformer):
    def seconds(self, xs):  return int(xs[0])
    def meridiem(self, xs): return str(xs[0]).upper()
    def start(self, xs):
        h, m = int(xs[0]), int(xs[1]); s = 0; half = None
        for x in xs[2:]:
            if isinstance(x, int): s = x
            else: half = x
        if half == "PM" and h < 12: h += 12
        elif half == "AM" and h == 12: h = 0
        h = min(23, max(0, h)); m = min(59, max(0, m)); s = min(59, max(0, s))
        return h*3600 + m*60 + s

_duration_parser = Lark(DURATION_GRAMMAR, parser="lalr", transformer=DurationToSeconds())
_clock_parser = Lark(CLOCK_GRAMMAR, parser="lalr", transformer=ClockToSeconds())


def parse_duration(token) -> Optional[int]:
    """':40' -> 40, '1:30' -> 90, '1:05:30' -> 3930, '90' -> 90; anything else -> None."""
    if token is None: return None
    s = str(token).strip()
    if not s: return None
    try:
        return _duration_parser.parse(s)
    except LarkError:
        return None

def parse_clock(token, default: str = DEFAULT_START) -> int:
    """Seconds from midnight for 'H:MM', 'HH:MM[:SS]' with optional AM/PM.

    Empty input falls back to `default`; malformed input gives 0.
    """
    s = str(token).strip() if token is not None else ""
    if not s: s = default
    try:
        return _clock_parser.parse(s)
    except LarkError:
        log.debug("Unparseable clock %r, using midnight", s)
        return 0

def format_duration(seconds) -> str:
    s = max(0, int(seconds or 0))
    h, rem = divmod(s, 3600); m, sec = divmod(rem, 60)
    return f"{h}:{m:02d}:{sec:02d}" if h else f"{m}:{sec:02d}"

def format_clock12(seconds_from_midnight, show_seconds: bool = False) -> str:
    s = int(seconds_from_midnight or 0) % DAY_SECONDS
    h24, rem = divmod(s, 3600); m, sec = divmod(rem, 60)
    ampm = "PM" if h24 >= 12 else "AM"
    h12 = (h24 + 11) % 12 + 1
    return f"{h12}:{m:02d}:{sec:02d} {ampm}" if show_seconds else f"{h12}:{m:02d} {ampm}"

def ceil_to_minute(seconds) -> int:
    # display only; cursors keep exact seconds
    s = max(0, int(seconds or 0))
    return s if s % 60 == 0 else (s // 60 + 1) * 60

def format_number(n) -> str:
    return f"{int(round(n or 0)):,}"


# ---------------------------------------------------------------------------
# Notation expander

BRACE_RE = re.compile(r"(\d+)\s*[xX×]\s*\{([^{}]*)\}")
MULTIPLIER_RE = re.compile(r"^(\d+)\s*[xX×]$")

def _repeat_block(m: "re.Match") -> str:
    times = int(m.group(1))
    first, _, rest = m.group(2).expandtabs(4).partition("\n")
    body = [ln.rstrip() for ln in [first.strip()] + textwrap.dedent(rest).splitlines() if ln.strip()]
    block = "\n".join(body)
    if times * (len(block) + 1) > MAX_EXPANDED_CHARS:
        log.debug("Repeat %sx of %d chars left as written", times, len(block))
        return m.group(0)
    # copies after the first sit at the column of the 'N x {' line
    head = m.string[m.string.rfind("\n", 0, m.start()) + 1:m.start()]
    pad = head[:len(head) - len(head.lstrip())].expandtabs(4)
    copies = "\n".join(pad + ln for _ in range(times) for ln in body)
    return copies[len(pad):]

def expand_braces(text: str, max_passes: int = MAX_EXPANSION_PASSES) -> str:
    out = text or ""
    for _ in range(max_passes):
        if not BRACE_RE.search(out): break
        out = BRACE_RE.sub(_repeat_block, out)
    else:
        if BRACE_RE.search(out):
            log.debug("Brace expansion stopped after %d passes", max_passes)
    return out

def _indent(line: str) -> int:
    return len(line) - len(line.lstrip())

def expand_indented(lines: List[str]) -> List[str]:
    """Repeat the deeper-indented lines under a bare 'N x' line N times.

    The multiplier line itself is dropped, with or without a block.
    """
    out: List[str] = []; i = 0
    while i < len(lines):
        line = lines[i]
        m = MULTIPLIER_RE.match(line.strip())
        if not m:
            out.append(line); i += 1
            continue
        depth = _indent(line); j = i + 1
        while j < len(lines) and _indent(lines[j]) > depth: j += 1
        body = expand_indented(lines[i+1:j]); times = int(m.group(1))
        if times * sum(len(b) + 1 for b in body) > MAX_EXPANDED_CHARS:
            log.debug("Indented repeat %sx left as written", times)
            out.append(line); out.extend(body)
        else:
            out.extend(body * times)
        i = j
    return out

def expand(text: str, max_passes: int = MAX_EXPANSION_PASSES) -> List[str]:
    """Flat list of trimmed, non-empty lines with every repeat block inlined."""
    if not text: return []
    flat = expand_braces(text, max_passes)
    raw = [ln.expandtabs(4).rstrip() for ln in flat.splitlines() if ln.strip()]
    return [ln.strip() for ln in expand_indented(raw)]


# ---------------------------------------------------------------------------
# Acronym table

DEFAULT_ACRONYMS = {
    "strokes": {
        "Free":   ["Free", "FR", "FS", "Freestyle"],
        "Back":   ["Back", "BK", "Backstroke"],
        "Breast": ["Breast", "BR", "Breaststroke"],
        "Fly":    ["Fly", "FL", "Butterfly"],
        "IM":     ["IM", "Medley"],
    },
    "styles": {
        "Kick":  ["K", "Kick"],
        "Swim":  ["S", "Swim"],
        "Pull":  ["P", "Pull"],
        "Drill": ["D", "DR", "Drill"],
        "Build": ["Build", "BLD"],
    },
}

def validate_acronyms(cfg) -> List[str]:
    errors = []
    if not isinstance(cfg, dict):
        return ["acronyms config must be an object"]
    for kind in ("strokes", "styles"):
        entries = cfg.get(kind)
        if not isinstance(entries, dict):
            errors.append(f"`{kind}` must be an object"); continue
        for name, tokens in entries.items():
            if not isinstance(tokens, list):
                errors.append(f"{kind}.{name} must be an array of strings"); continue
            for idx, tok in enumerate(tokens):
                if not isinstance(tok, str):
                    errors.append(f"{kind}.{name}[{idx}] must be a string")
    return errors

def _snapshot(entries, kind: str) -> Tuple[Tuple[str, Tuple[str, ...]], ...]:
    if not isinstance(entries, dict):
        if entries is not None: log.warning("Ignoring acronyms.%s: expected an object", kind)
        return ()
    out = []
    for name, tokens in entries.items():
        if not isinstance(tokens, (list, tuple)):
            log.warning("Ignoring acronyms.%s.%s: expected a list of tokens", kind, name)
            continue
        toks = tuple(t.strip() for t in tokens if isinstance(t, str) and t.strip())
        if toks: out.append((str(name), toks))
    return tuple(out)

@dataclass(frozen=True)
class AcronymTable:
    strokes: Tuple[Tuple[str, Tuple[str, ...]], ...] = ()
    styles: Tuple[Tuple[str, Tuple[str, ...]], ...] = ()

    @classmethod
    def from_mapping(cls, data) -> "AcronymTable":
        if isinstance(data, AcronymTable): return data
        if not isinstance(data, dict):
            if data is not None: log.warning("Ignoring acronyms config of type %s", type(data).__name__)
            data = {}
        return cls(_snapshot(data.get("strokes"), "strokes"), _snapshot(data.get("styles"), "styles"))

    def to_dict(self) -> Dict[str, Dict[str, List[str]]]:
        return {"strokes": {k: list(v) for k, v in self.strokes},
                "styles": {k: list(v) for k, v in self.styles}}

def load_acronyms(path=None) -> AcronymTable:
    path = path or os.environ.get(ACRONYMS_ENV)
    if not path:
        return AcronymTable.from_mapping(DEFAULT_ACRONYMS)
    p = Path(path)
    try:
        cfg = json.loads(p.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise AcronymConfigError(f"Acronyms config file not found at {p}. "
                                 f"Pass --acronyms or set {ACRONYMS_ENV}.") from e
    except json.JSONDecodeError as e:
        raise AcronymConfigError(f"Invalid acronyms config {p}: {e}") from e
    errors = validate_acronyms(cfg)
    if errors:
        raise AcronymConfigError("Invalid acronyms config: " + "; ".join(errors))
    log.debug("Loaded acronyms from %s", p)
    return AcronymTable.from_mapping(cfg)

def _word_pattern(tokens) -> "re.Pattern":
    alts = "|".join(re.escape(t) for t in sorted(tokens, key=len, reverse=True))
    return re.compile(rf"(?<!\w)(?:{alts})(?!\w)", re.IGNORECASE)

class TagMatcher:
    """Compiled stroke/style patterns for one computation."""

    def __init__(self, table=None):
        table = AcronymTable.from_mapping(table)
        self.strokes = [(name, _word_pattern(toks)) for name, toks in table.strokes]
        self.styles = [(name, _word_pattern(toks)) for name, toks in table.styles]
        letters = sorted({t.upper() for _, toks in table.styles for t in toks if len(t) == 1 and t.isalpha()})
        self.combined = None
        if letters:
            cls = "".join(re.escape(c) for c in letters)
            self.combined = re.compile(rf"(?<![\w/-])[{cls}](?:[/ -][{cls}])+(?![\w/-])", re.IGNORECASE)

    def match(self, line: str) -> Tuple[Tuple[str, ...], Tuple[str, ...]]:
        styles: List[str] = []
        m = self.combined.search(line) if self.combined else None
        if m:
            # K/S/D/S: one style per letter, repeats included
            for letter in re.split(r"[/ -]", m.group(0)):
                for name, pattern in self.styles:
                    if pattern.fullmatch(letter):
                        styles.append(name); break
        if not styles:
            styles = [name for name, pattern in self.styles if pattern.search(line)]
        strokes = [name for name, pattern in self.strokes if pattern.search(line)]
        return tuple(strokes) or (CHOICE_STROKE,), tuple(styles) or (SWIM_STYLE,)

def _matcher(tags) -> TagMatcher:
    return tags if isinstance(tags, TagMatcher) else TagMatcher(tags)


# ---------------------------------------------------------------------------
# Line interpreter

REPS_DISTANCE_RE = re.compile(r"^(\d+)\s*[xX×]\s*(\d+)")
REPS_RE = re.compile(r"^(\d+)\s*[xX×]")
DISTANCE_RE = re.compile(r"^(\d+)(?![\d:])(?!\s*[xX×])")
INTERVAL_RE = re.compile(r"(?:@|\bon\b)\s*(\d*:?\d+(?::\d+)?)(?![\w:])", re.IGNORECASE)
AT_TOKEN_RE = re.compile(r"@\s*([^\s/]*)")
BREAK_RE = re.compile(r"^break\b", re.IGNORECASE)

@dataclass(frozen=True)
class LineFacts:
    text: str
    reps: int = 1
    distance: int = 0
    interval: Optional[int] = None
    strokes: Tuple[str, ...] = ()
    styles: Tuple[str, ...] = ()
    is_break: bool = False

    @property
    def yardage(self) -> int:
        return 0 if self.is_break else self.reps * self.distance

    def to_dict(self) -> Dict[str, Any]:
        return {"text": self.text, "reps": self.reps, "distance": self.distance,
                "yardage": self.yardage, "interval": self.interval,
                "strokes": list(self.strokes), "styles": list(self.styles), "isBreak": self.is_break}

def interpret_line(line: str, tags=None) -> LineFacts:
    """Reps, distance, interval and stroke/style tags of one expanded line."""
    text = (line or "").strip()
    if BREAK_RE.match(text):
        return LineFacts(text=text, is_break=True)
    reps, distance = 1, 0
    m = REPS_DISTANCE_RE.match(text)
    if m:
        reps, distance = int(m.group(1)), int(m.group(2))
    else:
        m = REPS_RE.match(text)
        if m: reps = int(m.group(1))
        else:
            m = DISTANCE_RE.match(text)
            if m: distance = int(m.group(1))
    interval = None
    m = INTERVAL_RE.search(text)
    if m: interval = parse_duration(m.group(1))
    strokes, styles = _matcher(tags).match(text)
    return LineFacts(text, reps, distance, interval, strokes, styles)


# ---------------------------------------------------------------------------
# Section model

GroupId = NewType("GroupId", str)

@dataclass(frozen=True)
class SwimSection:
    kind: ClassVar[str] = "swim"
    raw_text: str = ""
    title: str = "Swim"

@dataclass(frozen=True)
class BreakSection:
    kind: ClassVar[str] = "break"
    raw_text: str = ""
    title: str = "Break"

@dataclass(frozen=True)
class Group:
    name: GroupId
    sections: Tuple[SwimSection, ...] = ()

@dataclass(frozen=True)
class GroupSplitSection:
    kind: ClassVar[str] = "group-split"
    groups: Tuple[Group, ...] = ()
    title: str = "Group Split"

Section = Union[SwimSection, BreakSection, GroupSplitSection]
SECTION_TYPES = (SwimSection, BreakSection, GroupSplitSection)

def _raw_text(item: Dict[str, Any]) -> str:
    for key in ("rawText", "content", "text"):
        if item.get(key) is not None: return str(item[key])
    return ""

def _group_from_dict(item, idx: int) -> Group:
    if not isinstance(item, dict):
        raise PracticeFormatError(f"Group must be an object, got {type(item).__name__}")
    name = GroupId(str(item.get("name") or f"Group {idx + 1}"))
    subs = item.get("sections")
    if subs is None and _raw_text(item):
        subs = [item]
    sections = []
    for sub in subs or []:
        if not isinstance(sub, dict):
            raise PracticeFormatError(f"Section of group '{name}' must be an object")
        sections.append(SwimSection(_raw_text(sub), sub.get("title") or "Swim"))
    return Group(name, tuple(sections))

def section_from_dict(item) -> Section:
    if isinstance(item, SECTION_TYPES): return item
    if not isinstance(item, dict):
        raise PracticeFormatError(f"Section must be an object, got {type(item).__name__}")
    kind = str(item.get("type") or item.get("kind") or "swim").lower()
    title = item.get("title") or item.get("name")
    if kind == "swim": return SwimSection(_raw_text(item), title or "Swim")
    if kind == "break": return BreakSection(_raw_text(item), title or "Break")
    if kind in ("group-split", "group_split"):
        groups = tuple(_group_from_dict(g, i) for i, g in enumerate(item.get("groups") or []))
        return GroupSplitSection(groups, title or "Group Split")
    raise PracticeFormatError(f"Unknown section type '{kind}'")

def sections_from_dicts(items) -> List[Section]:
    return [section_from_dict(it) for it in items or []]

def load_practice(path) -> Dict[str, Any]:
    p = Path(path)
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise PracticeFormatError(f"Practice file not found: {p}") from e
    except json.JSONDecodeError as e:
        raise PracticeFormatError(f"{p}: invalid JSON ({e})") from e
    if isinstance(data, list): data = {"sections": data}
    if not isinstance(data, dict):
        raise PracticeFormatError(f"{p}: expected an object with 'sections'")
    return {"title": data.get("title") or p.stem,
            "start": data.get("startTime") or data.get("start"),
            "sections": sections_from_dicts(data.get("sections"))}


# ---------------------------------------------------------------------------
# Section aggregator

@dataclass(frozen=True)
class EngineConfig:
    fallback_pace_seconds: int = FALLBACK_PACE_SECONDS
    fallback_pace_distance: int = FALLBACK_PACE_DISTANCE
    max_expansion_passes: int = MAX_EXPANSION_PASSES
    default_start: str = DEFAULT_START

    def fallback_seconds(self, yardage: int) -> int:
        if yardage <= 0 or self.fallback_pace_distance <= 0: return 0
        return -(-yardage * self.fallback_pace_seconds // self.fallback_pace_distance)

DEFAULT_CONFIG = EngineConfig()

@dataclass(frozen=True)
class Measurement:
    yardage: int = 0
    duration_seconds: int = 0
    lines: Tuple[LineFacts, ...] = ()

def line_seconds(facts: LineFacts, config: EngineConfig = DEFAULT_CONFIG) -> int:
    if facts.is_break: return 0
    if facts.interval: return facts.reps * facts.interval
    return config.fallback_seconds(facts.yardage)

def measure_text(text: str, tags=None, config: EngineConfig = DEFAULT_CONFIG) -> Measurement:
    tags = _matcher(tags)
    lines = tuple(interpret_line(ln, tags) for ln in expand(text, config.max_expansion_passes))
    yardage = sum(f.yardage for f in lines)
    seconds = sum(line_seconds(f, config) for f in lines)
    return Measurement(yardage, seconds, lines)

def measure_section(section: Section, tags=None, config: EngineConfig = DEFAULT_CONFIG) -> Measurement:
    if isinstance(section, BreakSection):
        return Measurement(0, parse_duration(section.raw_text) or 0)
    if isinstance(section, SwimSection):
        return measure_text(section.raw_text, tags, config)
    raise TypeError(f"cannot measure {type(section).__name__}")


# ---------------------------------------------------------------------------
# Results

@dataclass
class SyncInfo:
    synced_from_clock: int
    groups_waiting: Tuple[str, ...] = ()
    wait_seconds: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"syncedFromClock": self.synced_from_clock, "groupsWaiting": list(self.groups_waiting),
                "waitSeconds": dict(self.wait_seconds)}

@dataclass
class SectionResult:
    kind: str
    title: str
    raw_text: Optional[str] = None
    yardage: int = 0
    duration_seconds: int = 0
    end_seconds: int = 0
    end_clock: int = 0
    sync_info: Optional[SyncInfo] = None
    lines: Tuple[LineFacts, ...] = field(default=(), repr=False)

    def to_dict(self) -> Dict[str, Any]:
        d = {"kind": self.kind, "title": self.title, "yardage": self.yardage,
             "durationSeconds": self.duration_seconds, "endSeconds": self.end_seconds,
             "endClock": self.end_clock}
        if self.raw_text is not None: d["rawText"] = self.raw_text
        if self.sync_info: d["syncInfo"] = self.sync_info.to_dict()
        return d

@dataclass
class GroupResult:
    name: str
    sections: List[SectionResult] = field(default_factory=list)
    total_yardage: int = 0
    total_duration_seconds: int = 0
    clock_seconds: int = 0
    clock_time: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "totalYardage": self.total_yardage,
                "totalDurationSeconds": self.total_duration_seconds,
                "clockSeconds": self.clock_seconds, "clockTime": self.clock_time,
                "sections": [s.to_dict() for s in self.sections]}

@dataclass
class SplitResult(SectionResult):
    groups: List[GroupResult] = field(default_factory=list)
    pacing_group_name: Optional[str] = None
    divergence_seconds: int = 0
    longest_time_seconds: int = 0

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d.update({"groups": [g.to_dict() for g in self.groups], "pacingGroupName": self.pacing_group_name,
                  "divergenceSeconds": self.divergence_seconds,
                  "longestTimeSeconds": self.longest_time_seconds})
        return d

@dataclass
class Totals:
    yardage: int = 0
    time_seconds: int = 0
    def to_dict(self): return {"yardage": self.yardage, "timeSeconds": self.time_seconds}

@dataclass
class GroupTotals:
    yardage: int = 0
    time_seconds: int = 0
    actual_swim_seconds: int = 0
    def to_dict(self):
        return {"yardage": self.yardage, "timeSeconds": self.time_seconds,
                "actualSwimSeconds": self.actual_swim_seconds}


# ---------------------------------------------------------------------------
# Clock simulator

class ClockSimulator:
    """Single pass over the sections carrying a shared cursor and, once a
    split has been seen, one cursor per group.

    Cursors hold exact seconds from midnight; only `end_clock` and group
    `clock_time` are rounded up to the minute.
    """

    def __init__(self, start: int, tags=None, config: EngineConfig = DEFAULT_CONFIG):
        self.start = start
        self.cursor = start
        self.tags = _matcher(tags)
        self.config = config
        self.group_clocks: Dict[GroupId, int] = {}
        self.group_totals: Dict[GroupId, GroupTotals] = {}
        self.totals = Totals()
        self.shared_yardage = 0
        self.shared_seconds = 0
        self.split_seen = False

    @property
    def end_seconds(self) -> int:
        return max([self.cursor] + list(self.group_clocks.values()))

    def result_totals(self) -> Union[Totals, Dict[str, GroupTotals]]:
        if self.split_seen:
            return {str(k): v for k, v in self.group_totals.items()}
        return self.totals

    def run(self, sections: List[Section]) -> List[SectionResult]:
        out: List[SectionResult] = []; prev = None
        for sec in sections:
            if isinstance(sec, GroupSplitSection):
                out.append(self._split(sec))
            elif isinstance(sec, (SwimSection, BreakSection)):
                out.append(self._shared(sec, after_split=isinstance(prev, GroupSplitSection)))
            else:
                raise TypeError(f"unsupported section {type(sec).__name__}")
            prev = sec
        return out

    def _barrier(self) -> Optional[SyncInfo]:
        slowest = max(self.group_clocks.values())
        waiting: List[str] = []; waits: Dict[str, int] = {}
        for name, clock in self.group_clocks.items():
            if clock < slowest:
                gap = slowest - clock
                waiting.append(name); waits[name] = gap
                # idle time counts toward the group's elapsed time, not its swimming
                self.group_totals[name].time_seconds += gap
            self.group_clocks[name] = slowest
        self.cursor = slowest
        if waiting:
            log.debug("Barrier sync at %s: %s waiting", format_clock12(slowest, True), ", ".join(waiting))
            return SyncInfo(slowest, tuple(waiting), waits)
        return None

    def _shared(self, sec, after_split: bool) -> SectionResult:
        meas = measure_section(sec, self.tags, self.config)
        res = SectionResult(sec.kind, sec.title, sec.raw_text, meas.yardage, meas.duration_seconds,
                            lines=meas.lines)
        if self.group_clocks:
            if after_split: res.sync_info = self._barrier()
            self.cursor += meas.duration_seconds
            for name in self.group_clocks:
                self.group_clocks[name] = self.cursor
                gt = self.group_totals[name]
                gt.yardage += meas.yardage
                gt.time_seconds += meas.duration_seconds
                gt.actual_swim_seconds += meas.duration_seconds
        else:
            self.cursor += meas.duration_seconds
            self.totals.yardage += meas.yardage
            self.totals.time_seconds += meas.duration_seconds
        self.shared_yardage += meas.yardage
        self.shared_seconds += meas.duration_seconds
        res.end_seconds = self.cursor
        res.end_clock = ceil_to_minute(self.cursor)
        return res

    def _split(self, sec: GroupSplitSection) -> SplitResult:
        self.split_seen = True
        res = SplitResult("group-split", sec.title)
        for group in sec.groups:
            name = group.name
            if name not in self.group_clocks:
                # a late joiner has sat through everything shared so far
                self.group_clocks[name] = self.cursor
                self.group_totals[name] = GroupTotals(self.shared_yardage, self.cursor - self.start,
                                                      self.shared_seconds)
            clock = self.group_clocks[name]
            gres = GroupResult(str(name))
            for sub in group.sections:
                meas = measure_section(sub, self.tags, self.config)
                clock += meas.duration_seconds
                gres.total_yardage += meas.yardage
                gres.total_duration_seconds += meas.duration_seconds
                gres.sections.append(SectionResult(sub.kind, sub.title, sub.raw_text, meas.yardage,
                                                   meas.duration_seconds, clock, ceil_to_minute(clock),
                                                   lines=meas.lines))
            self.group_clocks[name] = clock
            gt = self.group_totals[name]
            gt.yardage += gres.total_yardage
            gt.time_seconds += gres.total_duration_seconds
            gt.actual_swim_seconds += gres.total_duration_seconds
            gres.clock_seconds = clock
            gres.clock_time = format_clock12(ceil_to_minute(clock))
            res.groups.append(gres)
        if res.groups:
            pacing = max(res.groups, key=lambda g: g.total_duration_seconds)  # first max wins
            fastest = min(g.total_duration_seconds for g in res.groups)
            res.pacing_group_name = pacing.name
            res.longest_time_seconds = pacing.total_duration_seconds
            res.divergence_seconds = pacing.total_duration_seconds - fastest
            res.duration_seconds = pacing.total_duration_seconds
        if self.group_clocks:
            self.cursor = max(self.group_clocks.values())
        res.end_seconds = self.cursor
        res.end_clock = ceil_to_minute(self.cursor)
        return res


# ---------------------------------------------------------------------------
# Stats aggregator

def apportion(yardage, names) -> Dict[str, float]:
    """Split a line's yardage evenly over the categories found on it."""
    out: Dict[str, float] = {}
    if not names: return out
    n = len(names)
    share = yardage // n if yardage % n == 0 else yardage / n
    for name in names:
        out[name] = out.get(name, 0) + share
    return out

@dataclass
class Stats:
    strokes: Dict[str, float] = field(default_factory=dict)
    styles: Dict[str, float] = field(default_factory=dict)

    def add_line(self, facts: LineFacts):
        if facts.is_break or facts.yardage <= 0: return
        for name, y in apportion(facts.yardage, facts.strokes).items():
            self.strokes[name] = self.strokes.get(name, 0) + y
        for name, y in apportion(facts.yardage, facts.styles).items():
            self.styles[name] = self.styles.get(name, 0) + y

    def add_lines(self, lines):
        for facts in lines: self.add_line(facts)

    def to_dict(self): return {"strokes": dict(self.strokes), "styles": dict(self.styles)}

def stats_for_text(text: str, acronyms=None) -> Stats:
    stats = Stats()
    tags = _matcher(acronyms)
    stats.add_lines(interpret_line(ln, tags) for ln in expand(text))
    return stats

def aggregate_stats(results: List[SectionResult]) -> Union[Stats, Dict[str, Stats]]:
    splits = [r for r in results if isinstance(r, SplitResult)]
    if not splits:
        total = Stats()
        for r in results: total.add_lines(r.lines)
        return total
    per_group: Dict[str, Stats] = {}
    for r in splits:
        for g in r.groups: per_group.setdefault(g.name, Stats())
    for r in results:
        if isinstance(r, SplitResult):
            for g in r.groups:
                for sub in g.sections: per_group[g.name].add_lines(sub.lines)
        else:
            for stats in per_group.values(): stats.add_lines(r.lines)
    return per_group


# ---------------------------------------------------------------------------
# Entry point

@dataclass
class PracticeTimeline:
    sections: List[SectionResult]
    totals: Union[Totals, Dict[str, GroupTotals]]
    stats: Union[Stats, Dict[str, Stats]]
    start_clock: int = 0
    end_seconds: int = 0

    @property
    def has_groups(self) -> bool:
        return isinstance(self.totals, dict)

    @property
    def elapsed_seconds(self) -> int:
        return self.end_seconds - self.start_clock

    def to_dict(self) -> Dict[str, Any]:
        if self.has_groups:
            totals = {k: v.to_dict() for k, v in self.totals.items()}
            stats = {k: v.to_dict() for k, v in self.stats.items()}
        else:
            totals = self.totals.to_dict(); stats = self.stats.to_dict()
        return {"startClock": self.start_clock, "endSeconds": self.end_seconds,
                "endClock": ceil_to_minute(self.end_seconds), "elapsedSeconds": self.elapsed_seconds,
                "sections": [s.to_dict() for s in self.sections], "totals": totals, "stats": stats}

def compute(sections, start_clock: Optional[str] = None, acronyms=None,
            config: Optional[EngineConfig] = None) -> PracticeTimeline:
    """Derive yardage, durations, clocks, totals and stats for a practice.

    `sections` may be section objects or persisted-record dicts; `acronyms`
    an AcronymTable, a {strokes, styles} mapping or None.
    """
    config = config or DEFAULT_CONFIG
    items = sections_from_dicts(sections)
    sim = ClockSimulator(parse_clock(start_clock, config.default_start),
                         TagMatcher(AcronymTable.from_mapping(acronyms)), config)
    results = sim.run(items)
    return PracticeTimeline(results, sim.result_totals(), aggregate_stats(results), sim.start, sim.end_seconds)

def format_sync_message(sync_info: Optional[SyncInfo]) -> str:
    if not sync_info or not sync_info.groups_waiting: return ""
    names = ", ".join(sync_info.groups_waiting)
    wait = max(sync_info.wait_seconds.values(), default=0)
    verb = "waits" if len(sync_info.groups_waiting) == 1 else "wait"
    return f"{names} {verb} {format_duration(wait)}"


# ---------------------------------------------------------------------------
# Lint

def _dangling_multipliers(text: str) -> List[str]:
    raw = [ln.expandtabs(4).rstrip() for ln in expand_braces(text).splitlines() if ln.strip()]
    out = []
    for i, ln in enumerate(raw):
        if MULTIPLIER_RE.match(ln.strip()):
            if i + 1 >= len(raw) or _indent(raw[i+1]) <= _indent(ln): out.append(ln.strip())
    return out

def lint(sections) -> List[Dict[str, Any]]:
    issues = []
    def add(level, code, path, msg): issues.append({"level": level, "code": code, "path": path, "msg": msg})
    def check_text(text, path):
        if text.count("{") != text.count("}"):
            add("error", "E020", path, f"Unbalanced braces ({text.count('{')} '{{' vs {text.count('}')} '}}')")
        for ln in _dangling_multipliers(text):
            add("warning", "W001", path, f"Multiplier '{ln}' has no indented block")
        for j, ln in enumerate(expand(text)):
            facts = interpret_line(ln)
            if facts.is_break: continue
            lp = f"{path}.LINE[{j}]"
            m = AT_TOKEN_RE.search(ln)
            if m and facts.interval is None:
                add("warning", "W002", lp, f"Interval '{m.group(1)}' not understood")
            if facts.yardage == 0:
                add("warning", "W003", lp, f"No distance in '{ln}'")
    for i, sec in enumerate(sections_from_dicts(sections)):
        path = f"SECTION[{i}]"
        if isinstance(sec, BreakSection):
            if (parse_duration(sec.raw_text) or 0) <= 0:
                add("error", "E010", path, f"Break duration '{sec.raw_text}' must be > 0")
        elif isinstance(sec, SwimSection):
            check_text(sec.raw_text, path)
        else:
            if not sec.groups:
                add("warning", "W030", path, "Group split has no groups")
            seen = set()
            for g in sec.groups:
                if g.name in seen:
                    add("error", "E031", path, f"Duplicate group '{g.name}'")
                seen.add(g.name)
                if not g.sections:
                    add("warning", "W030", f"{path}.GROUP[{g.name}]", "Group has no sections")
                for k, sub in enumerate(g.sections):
                    check_text(sub.raw_text, f"{path}.GROUP[{g.name}].SECTION[{k}]")
    return issues


# ---------------------------------------------------------------------------
# Formatting / rendering

def normalize_practice_text(text: str) -> str:
    # tabs become 4 spaces so repeat depth survives the rewrite
    out = []; prev_blank = False
    for ln in text.expandtabs(4).splitlines():
        s = ln.rstrip()
        is_blank = (s == "")
        if is_blank and prev_blank: continue
        out.append(s); prev_blank = is_blank
    return "\n".join(out).rstrip("\n") + "\n"

def _span(seconds, start_from) -> str:
    return f"{format_duration(seconds)}  →  {format_clock12(ceil_to_minute(start_from + seconds))}"

def render_timeline(tl: PracticeTimeline, title: Optional[str] = None) -> List[str]:
    lines = []
    if title: lines.append(title)
    lines.append(f"Start: {format_clock12(tl.start_clock)}")
    for r in tl.sections:
        if r.sync_info:
            lines.append(f"  ({format_sync_message(r.sync_info)})")
        if isinstance(r, SplitResult):
            head = r.title
            if r.pacing_group_name:
                head += f"  [pacing: {r.pacing_group_name}, divergence {format_duration(r.divergence_seconds)}]"
            lines.append(head)
            for g in r.groups:
                lines.append(f"  {g.name} - {format_number(g.total_yardage)}m  "
                             f"{format_duration(g.total_duration_seconds)}  →  {g.clock_time}")
            continue
        left = r.title + (f" – {format_number(r.yardage)}m" if r.yardage > 0 else "")
        lines.append(f"{left}  {format_duration(r.duration_seconds)}  →  {format_clock12(r.end_clock)}")
    if tl.has_groups:
        for name, gt in tl.totals.items():
            lines.append(f"{name} Total: {format_number(gt.yardage)}m  {_span(gt.time_seconds, tl.start_clock)}"
                         f"  (swimming {format_duration(gt.actual_swim_seconds)})")
    else:
        lines.append(f"Total: {format_number(tl.totals.yardage)}m  {_span(tl.totals.time_seconds, tl.start_clock)}")
    return lines

def render_stats(stats: Union[Stats, Dict[str, Stats]]) -> List[str]:
    def two(s: Stats, pad=""):
        fmt = lambda d: " · ".join(f"{k} {format_number(v)}" for k, v in d.items()) or "-"
        return [f"{pad}Strokes: {fmt(s.strokes)}", f"{pad}Styles: {fmt(s.styles)}"]
    if isinstance(stats, Stats): return two(stats)
    out = []
    for name, s in stats.items():
        out.append(f"{name}:"); out.extend(two(s, "  "))
    return out


# ---------------------------------------------------------------------------
# CLI

def _read_text(path) -> str:
    p = Path(path)
    try:
        return p.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise SwimcError(f"File not found: {p}") from e

def _dispatch(args) -> int:
    config = EngineConfig(fallback_pace_seconds=args.pace) if args.pace else DEFAULT_CONFIG
    if args.cmd == "fmt":
        normalized = normalize_practice_text(_read_text(args.file))
        if args.out:
            Path(args.out).write_text(normalized, encoding="utf-8"); print(f"Saved -> {args.out}")
        elif args.in_place:
            Path(args.file).write_text(normalized, encoding="utf-8")
        else:
            print(normalized, end="")
        return 0
    acronyms = load_acronyms(args.acronyms)
    if args.cmd == "expand":
        tags = TagMatcher(acronyms)
        facts = [interpret_line(ln, tags) for ln in expand(_read_text(args.file), config.max_expansion_passes)]
        if args.format == "json": print(json.dumps([f.to_dict() for f in facts], indent=2))
        else:
            for f in facts: print(f.text)
        return 0
    practice = load_practice(args.file)
    if args.cmd == "lint":
        issues = lint(practice["sections"])
        for i in issues: print(f"{i['level'].upper()} {i['code']} {i['path']}: {i['msg']}")
        return 1 if any(x["level"] == "error" for x in issues) else 0
    start = getattr(args, "start", None) or practice["start"]
    tl = compute(practice["sections"], start, acronyms, config)
    if args.cmd == "run":
        if args.format == "json": print(json.dumps(tl.to_dict(), indent=2, ensure_ascii=False))
        else: print("\n".join(render_timeline(tl, practice["title"])))
        return 0
    if args.cmd == "stats":
        if args.format == "json":
            data = {k: v.to_dict() for k, v in tl.stats.items()} if tl.has_groups else tl.stats.to_dict()
            print(json.dumps(data, indent=2, ensure_ascii=False))
        else: print("\n".join(render_stats(tl.stats)))
        return 0
    return 2

def main(argv=None) -> int:
    ap = argparse.ArgumentParser(prog="swimc")
    sub = ap.add_subparsers(dest="cmd", required=True)
    p1 = sub.add_parser("run");    p1.add_argument("file"); p1.add_argument("--start", help="HH:MM start clock")
    p2 = sub.add_parser("stats");  p2.add_argument("file")
    p3 = sub.add_parser("lint");   p3.add_argument("file")
    p4 = sub.add_parser("expand"); p4.add_argument("file")
    p5 = sub.add_parser("fmt");    p5.add_argument("file"); p5.add_argument("-i","--in-place", action="store_true"); p5.add_argument("-o","--out")
    for pp in (p1, p2, p4):
        pp.add_argument("--format", choices=["text","json"], default="text")
    for pp in (p1, p2, p3, p4, p5):
        pp.add_argument("--acronyms", help="acronym table JSON {strokes, styles}")
        pp.add_argument("--pace", type=int, help="fallback seconds per 100 for lines without an interval")
        pp.add_argument("-v", "--verbose", action="store_true")
    args = ap.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(asctime)s - %(levelname)s - %(message)s")
    try:
        return _dispatch(args)
    except SwimcError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

if __name__ == "__main__":
    sys.exit(main())
