"""
Parsing of VBoxManage machine-readable records.

`VBoxManage showvminfo <vm> --machinereadable` prints one ``key="value"``
pair per line. Keys containing special characters are quoted as well, and
numeric values are printed bare::

    name="my-vm"
    "SATA-0-0"="/vms/my-vm/disk.vdi"
    memory=1024
    Forwarding(0)="ssh,tcp,,2222,,22"

Everything here is a pure function of the text, so it can be exercised
without VirtualBox installed.
"""

import re
from collections import namedtuple
from typing import List, Mapping, Optional, Tuple, Union

RecordLike = Union[Mapping[str, str], str]

_QUOTED = r'"((?:[^"\\]|\\.)*)"'
_LINE_RE = re.compile(
    r'^\s*(?:' + _QUOTED + r'|([^="\s][^=]*?))\s*=\s*(?:' + _QUOTED + r'|(.*?))\s*$'
)
_ESCAPE_RE = re.compile(r'\\(.)')
_FORWARDING_KEY_RE = re.compile(r'^Forwarding\(\d+\)$')
_FIRST_PORT_RE = re.compile(r'^\s*(\d+)')

ForwardingRule = namedtuple(
    'ForwardingRule',
    ('name', 'protocol', 'host_ip', 'host_port', 'guest_ip', 'guest_port'),
)


def _unescape(value: str) -> str:
    return _ESCAPE_RE.sub(r'\1', value)


class Record(dict):
    """
    Parsed machine-readable output.

    Behaves as a dict where the last value of a repeated key wins. Every
    pair is also kept in output order in ``pairs``, since each network card
    numbers its ``Forwarding(N)`` entries from zero.
    """

    def __init__(self) -> None:
        super().__init__()
        self.pairs: List[Tuple[str, str]] = []


def parse_record(text: str) -> Record:
    """
    Parse machine-readable output into a Record.

    Quoted keys and values are unescaped (``\\"`` and ``\\\\``). Lines that
    are not ``key=value`` pairs are ignored.
    """
    record = Record()
    for line in text.splitlines():
        match = _LINE_RE.match(line)
        if not match:
            continue
        quoted_key, bare_key, quoted_value, bare_value = match.groups()
        key = _unescape(quoted_key) if quoted_key is not None else bare_key
        value = _unescape(quoted_value) if quoted_value is not None else bare_value
        record[key] = value
        record.pairs.append((key, value))
    return record


def _as_record(record: RecordLike) -> Mapping[str, str]:
    if isinstance(record, str):
        return parse_record(record)
    return record


def get_key(record: RecordLike, key: str) -> str:
    """Return the value stored under key, or an empty string."""
    return _as_record(record).get(key, "")


def parse_rule(value: str) -> Optional[ForwardingRule]:
    """Parse ``name,proto,hostip,hostport,guestip,guestport``; None if malformed."""
    fields = value.split(',')
    if len(fields) != 6:
        return None
    name, protocol, host_ip, host_port, guest_ip, guest_port = (f.strip() for f in fields)
    try:
        return ForwardingRule(name, protocol.lower(), host_ip, int(host_port), guest_ip, int(guest_port))
    except ValueError:
        return None


def forwarding_rules(record: RecordLike) -> List[ForwardingRule]:
    """All NAT port-forwarding rules of a record, in output order."""
    rules = []
    record = _as_record(record)
    for key, value in getattr(record, 'pairs', None) or record.items():
        if not _FORWARDING_KEY_RE.match(key):
            continue
        rule = parse_rule(value)
        if rule is not None:
            rules.append(rule)
    return rules


def get_port(record: RecordLike, guest_port: int) -> Optional[int]:
    """
    Host port forwarded to guest_port over TCP.

    Returns None when no rule forwards to that guest port, so a rule that
    maps to host port 0 is still distinguishable from a missing one.
    """
    for rule in forwarding_rules(record):
        if rule.protocol == 'tcp' and rule.guest_port == int(guest_port):
            return rule.host_port
    return None


def rdp_port(record: RecordLike) -> Optional[int]:
    """
    Port the VRDE server listens on.

    ``vrdeports`` is either a rule tuple, whose host port is used, or a port
    specification like ``3389``, ``5000-5050`` or ``3389,3390``, whose first
    port is used.
    """
    value = get_key(record, 'vrdeports')
    if not value:
        return None

    rule = parse_rule(value)
    if rule is not None:
        return rule.host_port

    match = _FIRST_PORT_RE.match(value)
    return int(match.group(1)) if match else None
