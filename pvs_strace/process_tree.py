# --------------------------------------------------------------
#
# Copyright (c) 2025, LLC NIC CT
# Copyright (c) 2025, Vladislav Shchapov <vladislav@shchapov.ru>
#
# This program is free software; you can redistribute it and/or
# modify it under the terms of the GNU General Public License
# as published by the Free Software Foundation; either version 2
# of the License, or any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program; if not, see <https://www.gnu.org/licenses/>.
#
# --------------------------------------------------------------

import dataclasses
from dataclasses import dataclass

from .config import Config
from .errors import AmbiguousIncarnation
from .events import CreationReturned, Exited



# --------------------------------------------------------------
# Инкарнация процесса: один период жизни pid в трассе
#

@dataclass
class Incarnation:
    index       : int
    pid         : int
    start       : int
    end         : int       = None  # None - процесс жив или выход не попал в трассу
    parent      : int       = None  # Индекс родителя в ProcessTree.incarnations
    children    : list[int] = dataclasses.field(default_factory=list)
    cwd         : str       = None
    cwd_explicit: bool      = False # Каталог установлен собственным chdir процесса

    @property
    def is_open(self) -> bool:
        return self.end is None

    def describe(self) -> str:
        return "  #{} pid={} lines={}..{} parent={} children={} cwd={}{}".format(
            self.index, self.pid, self.start, '' if self.end is None else self.end,
            self.parent, self.children, self.cwd, ' (chdir)' if self.cwd_explicit else '')



# --------------------------------------------------------------
# Дерево процессов
#
# Все инкарнации лежат в одном списке (порядок обнаружения), для каждого pid
# хранится упорядоченный по строке начала список индексов. Связи родитель/потомок
# - только индексы в общем списке.
#

class ProcessTree:
    def __init__(self, tolerance : int = Config.default_tolerance):
        self.tolerance    : int                  = tolerance
        self.incarnations : list[Incarnation]    = []
        self.by_pid       : dict[int, list[int]] = {}

    def __len__(self):
        return len(self.incarnations)

    def __getitem__(self, index : int) -> Incarnation:
        return self.incarnations[index]

    def __iter__(self):
        return iter(self.incarnations)


    def new_incarnation(self, pid : int, start : int) -> Incarnation:
        inc = Incarnation(len(self.incarnations), pid, start)
        self.incarnations.append(inc)
        self.by_pid.setdefault(pid, []).append(inc.index)
        return inc

    # Открытая (последняя) инкарнация pid
    def current(self, pid : int) -> Incarnation:
        indexes = self.by_pid.get(pid)
        if indexes:
            inc = self.incarnations[indexes[-1]]
            if inc.is_open:
                return inc
        return None

    def ensure_open(self, pid : int, lineno : int) -> Incarnation:
        if (inc := self.current(pid)) is not None:
            return inc
        return self.new_incarnation(pid, lineno)

    # Инкарнация pid, живая на строке lineno: последняя начавшаяся не позже lineno,
    # еще открытая или закрытая не более чем tolerance строк назад.
    # Строка завершения clone() может оказаться в трассе позже строки выхода потомка.
    def lookup(self, pid : int, lineno : int) -> Incarnation:
        for index in reversed(self.by_pid.get(pid, ())):
            inc = self.incarnations[index]
            if inc.start > lineno:
                continue
            if inc.end is None or lineno <= inc.end + self.tolerance:
                return inc
            # Более ранние инкарнации закрыты еще раньше
            break
        return None

    def find(self, pid : int, lineno : int) -> Incarnation:
        if (inc := self.lookup(pid, lineno)) is None:
            raise AmbiguousIncarnation("no live incarnation", pid, lineno, self.dump(pid))
        return inc

    def link(self, parent : Incarnation, child : Incarnation):
        if child.parent == parent.index:
            return
        child.parent = parent.index
        parent.children.append(child.index)

    def parent_of(self, inc : Incarnation) -> Incarnation:
        return None if inc.parent is None else self.incarnations[inc.parent]

    # inc совпадает с of или является его предком
    def is_ancestor(self, inc : Incarnation, of : Incarnation) -> bool:
        seen = set()
        cur  = of
        while cur is not None and cur.index not in seen:
            if cur is inc:
                return True
            seen.add(cur.index)
            cur = self.parent_of(cur)
        return False

    def children_of(self, inc : Incarnation):
        return [ self.incarnations[i] for i in inc.children ]

    def roots(self) -> list[Incarnation]:
        return [ inc for inc in self.incarnations if inc.parent is None ]

    def reset_directories(self):
        for inc in self.incarnations:
            inc.cwd          = None
            inc.cwd_explicit = False

    def dump(self, pid : int) -> str:
        indexes = self.by_pid.get(pid, ())
        if not indexes:
            return "  pid {} has no incarnations".format(pid)
        return '\n'.join(self.incarnations[i].describe() for i in indexes)



# --------------------------------------------------------------
# Первый проход: построение дерева
#

def build_tree(events, tolerance : int = Config.default_tolerance) -> ProcessTree:
    tree = ProcessTree(tolerance)

    for event in events:
        caller = tree.ensure_open(event.pid, event.lineno)

        if isinstance(event, CreationReturned):
            # Потомок мог уже отработать (и даже завершиться) до возврата из clone().
            # У инкарнации ровно одна строка возврата: уже связанная - это прошлый процесс с тем же pid.
            # Предок вызывающего (например, завершившийся корень) потомком стать не может.
            child = tree.lookup(event.child, event.lineno)
            if child is None or child.parent is not None or tree.is_ancestor(child, caller):
                child = tree.new_incarnation(event.child, event.lineno)
            tree.link(caller, child)

        elif isinstance(event, Exited):
            caller.end = event.lineno

        # <unfinished ...> родителя не дает связи: она появится в строке возврата

    return tree
