import unittest

import pytest

from scopebind import Lifetime, RegistryBuilder, Scope


class Service: ...


def _registry(disposed: list | None = None):
    def track(name):
        if disposed is None:
            return None
        return lambda instance, ctx: disposed.append((name, instance, ctx))

    return (
        RegistryBuilder()
        .add("on_demand", lambda ctx, r: Service(), Lifetime.ON_DEMAND, track("on_demand"))
        .add("single", lambda ctx, r: Service(), Lifetime.SINGLE_INSTANCE, track("single"))
        .add("transient", lambda ctx, r: Service(), Lifetime.TRANSIENT, track("transient"))
        .build()
    )


class TestChildScopes(unittest.TestCase):
    parent: Scope

    def setUp(self):
        self.parent = Scope("app", _registry())

    def test_root_scope_is_root(self):
        assert self.parent.is_root
        assert not self.parent.create_scope("request").is_root

    def test_child_is_bound_to_new_context(self):
        child = self.parent.create_scope("request")

        assert child.context == "request"
        assert child.registry is self.parent.registry

    def test_single_instance_is_shared_with_children(self):
        instance = self.parent.get_service("single")
        child = self.parent.create_scope("request")
        grandchild = child.create_scope("action")

        assert child.get_service("single") is instance
        assert grandchild.get_service("single") is instance

    def test_transient_is_not_shared_with_children(self):
        instance = self.parent.get_service("transient")
        child = self.parent.create_scope("request")

        child_instance = child.get_service("transient")

        assert child_instance is not instance
        assert child.get_service("transient") is child_instance
        assert self.parent.get_service("transient") is instance

    def test_child_transient_is_not_visible_to_parent(self):
        child = self.parent.create_scope("request")
        child_instance = child.get_service("transient")

        assert self.parent.get_service("transient") is not child_instance

    def test_child_single_instance_cache_is_a_snapshot(self):
        child = self.parent.create_scope("request")
        parent_instance = self.parent.get_service("single")

        assert child.get_service("single") is not parent_instance

    def test_factory_receives_scope_context_and_resolver(self):
        seen = []

        def factory(ctx, resolver):
            seen.append((ctx, resolver))
            return Service()

        scope = Scope("app", RegistryBuilder().add("svc", factory, Lifetime.TRANSIENT).build())
        child = scope.create_scope("request")
        child.get_service("svc")

        assert seen == [("request", child)]


class TestEndScope(unittest.TestCase):
    def setUp(self):
        self.disposed = []
        self.scope = Scope("app", _registry(self.disposed))

    def test_root_end_scope_disposes_everything_in_accumulation_order(self):
        single = self.scope.get_service("single")
        transient = self.scope.get_service("transient")
        first = self.scope.get_service("on_demand")
        second = self.scope.get_service("on_demand")

        self.scope.end_scope()

        assert self.disposed == [
            ("on_demand", first, "app"),
            ("on_demand", second, "app"),
            ("transient", transient, "app"),
            ("single", single, "app"),
        ]

    def test_each_disposer_runs_once(self):
        self.scope.get_service("transient")
        self.scope.end_scope()
        self.scope.end_scope()

        assert [name for name, _, _ in self.disposed] == ["transient"]

    def test_root_behaves_as_fresh_after_end_scope(self):
        transient = self.scope.get_service("transient")
        single = self.scope.get_service("single")
        on_demand = self.scope.get_service("on_demand")

        self.scope.end_scope()

        assert self.scope.get_service("transient") is not transient
        assert self.scope.get_service("single") is not single
        assert self.scope.get_service("on_demand") is not on_demand

    def test_child_end_scope_leaves_single_instances_alone(self):
        single = self.scope.get_service("single")
        child = self.scope.create_scope("request")
        child_transient = child.get_service("transient")
        child.get_service("single")

        child.end_scope()

        assert self.disposed == [("transient", child_transient, "request")]
        assert child.get_service("single") is single
        assert self.scope.get_service("single") is single

    def test_child_end_scope_does_not_touch_parent_transients(self):
        parent_transient = self.scope.get_service("transient")
        child = self.scope.create_scope("request")

        child.end_scope()

        assert self.disposed == []
        assert self.scope.get_service("transient") is parent_transient

    def test_throwing_disposer_aborts_remaining_disposals(self):
        calls = []

        def boom(instance, ctx):
            msg = "cannot close"
            raise OSError(msg)

        registry = (
            RegistryBuilder()
            .add("broken", lambda ctx, r: Service(), Lifetime.ON_DEMAND, boom)
            .add("ok", lambda ctx, r: Service(), Lifetime.TRANSIENT, lambda i, c: calls.append(i))
            .build()
        )
        scope = Scope(None, registry)
        scope.get_service("ok")
        scope.get_service("broken")

        with pytest.raises(OSError, match="cannot close"):
            scope.end_scope()

        assert calls == []


def test_scope_as_context_manager_ends_scope():
    disposed = []
    root = Scope("app", _registry(disposed))

    with root.create_scope("request") as child:
        instance = child.get_service("transient")

    assert disposed == [("transient", instance, "request")]


def test_scope_context_manager_ends_scope_when_body_raises():
    disposed = []
    root = Scope("app", _registry(disposed))

    with pytest.raises(ValueError, match="request failed"), root.create_scope("request") as child:
        child.get_service("on_demand")
        msg = "request failed"
        raise ValueError(msg)

    assert [name for name, _, _ in disposed] == ["on_demand"]
