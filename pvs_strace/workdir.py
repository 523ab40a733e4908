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

import os.path

from .config       import Options
from .console      import Console
from .errors       import UnresolvedParent, UnresolvedWorkingDirectory
from .events       import CreationReturned, CreationUnfinished, DirChanged, Executed
from .process_tree import Incarnation, ProcessTree



# --------------------------------------------------------------
# Второй проход: рабочие каталоги
#
# Трасса читается повторно по порядку строк. Каталог передается от родителя
# потомку в момент возврата из clone(), а если потомок успел выполниться раньше -
# в момент <unfinished ...> родителя.
#

class WorkingDirectoryResolver:
    def __init__(self, tree : ProcessTree, root_cwd, options : Options = None, console : Console = None):
        self.__tree     : ProcessTree = tree
        self.__root_cwd : str         = os.path.abspath(str(root_cwd))
        self.__options  : Options     = options if options is not None else Options()
        self.__console  : Console     = console if console is not None else Console(self.__options)


    def assign_roots(self):
        roots = self.__tree.roots()
        if len(roots) > 1:
            if self.__options.strict_roots:
                extra = roots[1]
                raise UnresolvedParent("process was never created by a traced clone/fork", extra.pid, extra.start, self.__tree.dump(extra.pid))
            self.__console.warning("multiple roots in process tree, pids:", ' '.join(str(r.pid) for r in roots))

        for root in roots:
            root.cwd = self.__root_cwd


    # Каталог инкарнации. Если наследование еще не произошло (гонка clone/exec) -
    # берется каталог ближайшего предка, у которого он есть.
    def cwd_of(self, inc : Incarnation, lineno : int = None) -> str:
        if inc.cwd is not None:
            return inc.cwd

        chain = []
        seen  = set()
        cur   = inc
        while cur.cwd is None:
            chain.append(cur)
            seen.add(cur.index)
            if (cur := self.__tree.parent_of(cur)) is None or cur.index in seen:
                msg = "cannot resolve working directory" if cur is None else "cycle in process tree"
                raise UnresolvedWorkingDirectory(msg, inc.pid, lineno, '\n'.join(c.describe() for c in chain))

        for c in chain:
            c.cwd = cur.cwd
        self.__console.debug("cwd fallback:", inc.pid, "line", lineno, "->", cur.cwd)
        return cur.cwd


    def run(self, events):
        self.__tree.reset_directories()
        self.assign_roots()

        for event in events:
            inc = self.__tree.find(event.pid, event.lineno)

            if isinstance(event, CreationReturned):
                child = self.__tree.find(event.child, event.lineno)
                if child.parent != inc.index:
                    raise UnresolvedParent("child {} is not linked to its creator".format(event.child), event.pid, event.lineno, self.__tree.dump(event.child))
                if not child.cwd_explicit:
                    child.cwd = self.cwd_of(inc, event.lineno)

            elif isinstance(event, CreationUnfinished):
                # Потомки, начавшиеся после этой строки, еще не получили каталог родителя
                cwd = None
                for child in self.__tree.children_of(inc):
                    if child.start > event.lineno and not child.cwd_explicit:
                        if cwd is None:
                            cwd = self.cwd_of(inc, event.lineno)
                        child.cwd = cwd

            elif isinstance(event, DirChanged):
                path = event.path
                if not os.path.isabs(path):
                    path = os.path.join(self.cwd_of(inc, event.lineno), path)
                inc.cwd          = os.path.normpath(path)
                inc.cwd_explicit = True
                self.__console.debug("chdir:", event.pid, "line", event.lineno, "->", inc.cwd)

            elif isinstance(event, Executed):
                yield event, self.cwd_of(inc, event.lineno)



def resolve_directories(tree : ProcessTree, events, root_cwd, options : Options = None, console : Console = None):
    return WorkingDirectoryResolver(tree, root_cwd, options, console).run(events)
