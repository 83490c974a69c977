# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Tests for the Specification builder."""

from genrepo.data.specification import Specification


class ActiveByName(Specification[object]):
    def __init__(self) -> None:
        super().__init__(lambda e: e.active)
        self.add_include("orders")
        self.add_order_by("name")
        self.apply_paging(20, 10)


class TestSpecificationDefaults:
    def test_empty_specification(self):
        spec: Specification[object] = Specification()
        assert spec.criteria is None
        assert spec.includes == ()
        assert spec.order_by is None
        assert spec.ascending is True
        assert spec.skip == 0
        assert spec.take == 0

    def test_criteria_from_constructor(self):
        criteria = lambda e: e.active  # noqa: E731
        assert Specification(criteria).criteria is criteria


class TestSpecificationMutators:
    def test_add_criteria_replaces(self):
        spec: Specification[object] = Specification("first")
        spec.add_criteria("second")
        assert spec.criteria == "second"

    def test_add_order_by_replaces_previous(self):
        spec: Specification[object] = Specification()
        spec.add_order_by("name").add_order_by("created_at", ascending=False)
        assert spec.order_by == "created_at"
        assert spec.ascending is False

    def test_includes_keep_insertion_order(self):
        spec: Specification[object] = Specification()
        spec.add_include("customer").add_include("lines").add_include("customer")
        assert spec.includes == ("customer", "lines", "customer")

    def test_apply_paging(self):
        spec: Specification[object] = Specification()
        spec.apply_paging(30, 15)
        assert (spec.skip, spec.take) == (30, 15)

    def test_includes_view_is_read_only(self):
        spec: Specification[object] = Specification()
        spec.add_include("customer")
        view = spec.includes
        spec.add_include("lines")
        assert view == ("customer",)


class TestSpecificationSubclass:
    def test_named_query_shape(self):
        spec = ActiveByName()
        assert spec.includes == ("orders",)
        assert spec.order_by == "name"
        assert (spec.skip, spec.take) == (20, 10)
        assert "ActiveByName" in repr(spec)
