# test_store.py -- Tests for the blob stores
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

"""Tests for the blob stores."""

import os
from io import BytesIO

from driveremote.errors import BackendError, PathExists, PathNotFound
from driveremote.store import (
    FileEntry,
    LocalBlobStore,
    MemoryBlobStore,
    join_path,
    split_path,
)

from . import TestCase


class PathTests(TestCase):
    def test_split_root(self) -> None:
        self.assertEqual([], split_path(""))
        self.assertEqual([], split_path("/"))
        self.assertEqual([], split_path("."))

    def test_split(self) -> None:
        self.assertEqual(["a", "b", "c"], split_path("/a//b/./c/"))

    def test_join(self) -> None:
        self.assertEqual("objects/ab/cdef", join_path("", "/objects", "ab/", "cdef"))
        self.assertEqual("repo.git/refs", join_path("repo.git", "refs"))
        self.assertEqual("", join_path("/", ""))


class BlobStoreTests:
    """Tests shared by every blob store implementation."""

    def make_store(self):
        raise NotImplementedError(self.make_store)

    def setUp(self) -> None:
        super().setUp()
        self.store = self.make_store()

    def read(self, path: str) -> bytes:
        buf = BytesIO()
        self.store.read(path, buf)
        return buf.getvalue()

    def test_create_and_read(self) -> None:
        self.store.create("refs/heads/main", BytesIO(b"contents\n"))
        self.assertEqual(b"contents\n", self.read("refs/heads/main"))
        self.assertEqual(b"contents\n", self.read("/refs//heads/main"))

    def test_create_existing(self) -> None:
        self.store.create("a/b", BytesIO(b"one"))
        self.assertRaises(PathExists, self.store.create, "a/b", BytesIO(b"two"))
        self.assertEqual(b"one", self.read("a/b"))

    def test_read_missing(self) -> None:
        with self.assertRaises(PathNotFound) as cm:
            self.read("nothing/here")
        self.assertEqual("nothing/here", cm.exception.path)

    def test_update(self) -> None:
        self.store.create("a", BytesIO(b"one"))
        self.store.update("a", BytesIO(b"two"))
        self.assertEqual(b"two", self.read("a"))

    def test_update_missing(self) -> None:
        self.assertRaises(PathNotFound, self.store.update, "a", BytesIO(b"two"))
        self.assertFalse(self.store.exists("a"))

    def test_delete(self) -> None:
        self.store.create("dir/a", BytesIO(b"one"))
        self.store.delete("dir/a")
        self.assertFalse(self.store.exists("dir/a"))
        self.assertRaises(PathNotFound, self.read, "dir/a")

    def test_delete_missing(self) -> None:
        self.assertRaises(PathNotFound, self.store.delete, "dir/a")

    def test_listdir(self) -> None:
        self.store.create("refs/heads/main", BytesIO(b"1"))
        self.store.create("refs/heads/topic", BytesIO(b"2"))
        self.store.create("refs/tags/v1/x", BytesIO(b"3"))
        self.assertEqual(
            [FileEntry(True, "heads"), FileEntry(True, "tags")],
            sorted(self.store.listdir("refs")),
        )
        self.assertEqual(
            [FileEntry(False, "main"), FileEntry(False, "topic")],
            sorted(self.store.listdir("refs/heads")),
        )
        self.assertEqual([FileEntry(True, "refs")], self.store.listdir("/"))
        self.assertEqual([FileEntry(True, "refs")], self.store.listdir(""))

    def test_listdir_empty_root(self) -> None:
        self.assertEqual([], self.store.listdir(""))

    def test_listdir_missing(self) -> None:
        self.assertRaises(PathNotFound, self.store.listdir, "refs")

    def test_exists(self) -> None:
        self.assertTrue(self.store.exists(""))
        self.assertFalse(self.store.exists("a/b"))
        self.store.create("a/b", BytesIO(b""))
        self.assertTrue(self.store.exists("a"))
        self.assertTrue(self.store.exists("a/b"))


class MemoryBlobStoreTests(BlobStoreTests, TestCase):
    def make_store(self):
        return MemoryBlobStore()

    def test_initial_files(self) -> None:
        store = MemoryBlobStore({"/refs/heads/main": b"x\n"})
        self.assertEqual({"refs/heads/main": b"x\n"}, store.files)
        self.assertIn("refs/heads/main", repr(store))


class LocalBlobStoreTests(BlobStoreTests, TestCase):
    def make_store(self):
        self.root = self.mkdtemp()
        return LocalBlobStore(self.root)

    def test_layout(self) -> None:
        self.store.create("objects/ab/cdef", BytesIO(b"data"))
        with open(os.path.join(self.root, "objects", "ab", "cdef"), "rb") as f:
            self.assertEqual(b"data", f.read())
        self.assertFalse(os.path.exists(os.path.join(self.root, "objects", "ab", "cdef.lock")))

    def test_listdir_skips_lock_files(self) -> None:
        self.store.create("refs/heads/main", BytesIO(b"1"))
        with open(os.path.join(self.root, "refs", "heads", "topic.lock"), "wb"):
            pass
        self.assertEqual([FileEntry(False, "main")], self.store.listdir("refs/heads"))

    def test_stale_lock(self) -> None:
        self.store.create("refs/heads/main", BytesIO(b"1"))
        os.makedirs(os.path.join(self.root, "objects", "ab"))
        for name in [("refs", "heads", "main.lock"), ("objects", "ab", "cdef.lock")]:
            with open(os.path.join(self.root, *name), "wb"):
                pass
        self.assertRaises(BackendError, self.store.update, "refs/heads/main", BytesIO(b"2"))
        self.assertRaises(BackendError, self.store.create, "objects/ab/cdef", BytesIO(b"x"))
        self.assertEqual(b"1", self.read("refs/heads/main"))
        self.assertFalse(self.store.exists("objects/ab/cdef"))

    def test_read_directory(self) -> None:
        self.store.create("refs/heads/main", BytesIO(b"1"))
        self.assertRaises(PathNotFound, self.read, "refs/heads")

    def test_repr(self) -> None:
        self.assertIn(self.root, repr(self.store))
