"""Runner dispatch: subprocess execution, process tracking, worker pool.

Architecture::

    runner.py       SnippetRunner      one runnable block → RunResult
    dispatcher.py   Dispatcher         worker pool, ordering, abort
    processes.py    ProcessRegistry    live subprocesses + kill escalation
    workdir.py      scoped_workdir()   temp dirs removed on every exit path
"""

from .dispatcher import Dispatcher, DocumentPlan
from .processes import ProcessRegistry
from .runner import SnippetRunner
from .workdir import scoped_workdir

__all__ = [
    "Dispatcher",
    "DocumentPlan",
    "ProcessRegistry",
    "SnippetRunner",
    "scoped_workdir",
]
