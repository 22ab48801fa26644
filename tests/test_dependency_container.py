"""
依赖注入容器测试
"""

import pytest
from unittest.mock import Mock

from duquebot.core.dependency_container import DependencyContainer


class TestDependencyContainer:
    """测试依赖注入容器"""

    def setup_method(self):
        self.container = DependencyContainer()

    def test_register_and_resolve_singleton(self):
        factory = Mock(return_value=object())
        self.container.register_singleton("service", factory)

        first = self.container.resolve("service")
        second = self.container.resolve("service")

        assert first is second
        factory.assert_called_once_with()

    def test_dependencies_passed_by_name(self):
        self.container.register_instance("config", {"value": 1})
        self.container.register_singleton("store", lambda config: ("store", config["value"]), ["config"])
        self.container.register_singleton("service", lambda store: ("service", store), ["store"])

        assert self.container.resolve("service") == ("service", ("store", 1))

    def test_register_duplicate(self):
        self.container.register_instance("config", 1)
        with pytest.raises(ValueError):
            self.container.register_singleton("config", Mock())

    def test_resolve_unregistered(self):
        with pytest.raises(ValueError, match="未注册"):
            self.container.resolve("missing")

    def test_factory_error_wrapped(self):
        self.container.register_singleton("broken", Mock(side_effect=KeyError("boom")))

        with pytest.raises(RuntimeError, match="broken"):
            self.container.resolve("broken")

    def test_validate_missing_dependency(self):
        self.container.register_singleton("service", lambda store: store, ["store"])

        with pytest.raises(RuntimeError, match="store"):
            self.container.validate_dependencies()

    def test_validate_cycle(self):
        self.container.register_singleton("a", lambda b: b, ["b"])
        self.container.register_singleton("b", lambda a: a, ["a"])

        with pytest.raises(RuntimeError, match="循环依赖"):
            self.container.validate_dependencies()

    def test_resolve_cycle(self):
        self.container.register_singleton("a", lambda b: b, ["b"])
        self.container.register_singleton("b", lambda a: a, ["a"])

        with pytest.raises(RuntimeError, match="循环依赖"):
            self.container.resolve("a")

    def test_validate_registered_graph(self):
        self.container.register_instance("config", 1)
        self.container.register_singleton("store", lambda config: config, ["config"])

        assert self.container.validate_dependencies()
