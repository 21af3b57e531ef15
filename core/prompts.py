"""
Result states of a shell invocation.

Engine operations are generators: when they need something from the human
they ``yield`` a ``Prompt`` and get the answer back from ``send``.  A ``None``
answer means the human cancelled.  The dispatcher surfaces a pending prompt
as ``AwaitingInput`` and finishes with a ``Reply``.
"""
from dataclasses import dataclass

TEXT   = "text"
SECRET = "secret"    # masked single line (passwords)
EDIT   = "edit"      # multi-line edit surface seeded with ``initial``


@dataclass(frozen=True)
class Prompt:
    label: str
    kind: str = SECRET
    initial: str = ""


@dataclass(frozen=True)
class Reply:
    text: str


@dataclass(frozen=True)
class AwaitingInput:
    prompt: Prompt
