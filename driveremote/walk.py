# walk.py -- Reachability over the commit graph
# Copyright (C) 2026 git-remote-drive contributors
#
# SPDX-License-Identifier: Apache-2.0 OR GPL-2.0-or-later
# git-remote-drive is dual-licensed under the Apache License, Version 2.0 and
# the GNU General Public License as published by the Free Software Foundation;
# version 2.0 or (at your option) any later version. You can redistribute it
# and/or modify it under the terms of either of these two licenses.
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# You should have received a copy of the licenses; if not, see
# <http://www.gnu.org/licenses/> for a copy of the GNU General Public License
# and <http://www.apache.org/licenses/LICENSE-2.0> for a copy of the Apache
# License, Version 2.0.
#

"""Finding the objects reachable from a commit."""

__all__ = [
    "reachable",
    "reachable_tree",
]

import logging
from collections.abc import Iterable

from .repo import ObjectSource

logger = logging.getLogger(__name__)

_COMMIT = "commit"
_TREE = "tree"


def _walk(
    source: ObjectSource, start: tuple[str, str], exclude: Iterable[str] | None
) -> set[str]:
    seen = set(exclude or ())
    result: set[str] = set()
    if start[1] in seen:
        return result
    pending = [start]
    while pending:
        kind, sha = pending.pop()
        if kind == _COMMIT:
            commit = source.get_commit(sha)
            children = [(_TREE, commit.tree)] + [(_COMMIT, p) for p in commit.parents]
        else:
            children = [(entry.kind, entry.sha) for entry in source.get_tree(sha)]
        for child_kind, child in children:
            if child in seen:
                continue
            seen.add(child)
            result.add(child)
            if child_kind in (_COMMIT, _TREE):
                pending.append((child_kind, child))
    logger.debug("%d objects reachable from %s %s", len(result), start[0], start[1])
    return result


def reachable(
    source: ObjectSource, commit: str, exclude: Iterable[str] | None = None
) -> set[str]:
    """Return the ids of every object reachable from a commit.

    The commit itself is not included. Every tree, blob and ancestor
    commit is walked once, however many paths lead to it.

    Args:
      source: Object source able to parse the commits and trees
      commit: Id of the commit to start from
      exclude: Objects not to report or descend into. This should be
        closed under reachability (for example another commit's
        reachable set plus that commit), in which case the result is
        exactly the full reachable set minus exclude.
    Returns: Set of hex object ids
    """
    return _walk(source, (_COMMIT, commit), exclude)


def reachable_tree(
    source: ObjectSource, tree: str, exclude: Iterable[str] | None = None
) -> set[str]:
    """Return the ids of every tree and blob below a tree, excluding itself."""
    return _walk(source, (_TREE, tree), exclude)
