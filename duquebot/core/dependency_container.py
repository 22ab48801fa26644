"""
依赖注入容器

按名称注册组件工厂，解析时先递归解析其依赖，保证：
- 存储连接只创建一次并注入所有服务
- 组件按依赖顺序初始化
- 注册阶段就能发现缺失依赖和循环依赖
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Set


@dataclass
class Registration:
    """组件注册信息"""
    factory: Callable[..., Any]
    dependencies: List[str] = field(default_factory=list)
    instance: Optional[Any] = None
    resolved: bool = False


class DependencyContainer:
    """
    依赖注入容器

    所有组件均为单例；工厂函数的关键字参数名与依赖名称一致。
    """

    def __init__(self):
        self.logger = logging.getLogger("duquebot.core.dependency")
        self._registrations: Dict[str, Registration] = {}
        self._resolving: Set[str] = set()

    def register_singleton(
        self,
        name: str,
        factory: Callable[..., Any],
        dependencies: Optional[List[str]] = None
    ) -> None:
        """
        注册单例组件

        Args:
            name: 组件名称
            factory: 创建实例的工厂函数
            dependencies: 依赖的组件名称列表

        Raises:
            ValueError: 名称已注册
        """
        if name in self._registrations:
            raise ValueError(f"依赖项 '{name}' 已经注册")

        self._registrations[name] = Registration(factory=factory, dependencies=list(dependencies or []))
        self.logger.debug(f"📝 注册依赖项: {name}")

    def register_instance(self, name: str, instance: Any) -> None:
        """注册已创建的实例（例如 Discord 客户端）"""
        if name in self._registrations:
            raise ValueError(f"依赖项 '{name}' 已经注册")

        self._registrations[name] = Registration(factory=lambda: instance, instance=instance, resolved=True)
        self.logger.debug(f"📝 注册实例: {name}")

    def resolve(self, name: str) -> Any:
        """
        解析组件

        Args:
            name: 组件名称

        Returns:
            组件实例

        Raises:
            ValueError: 组件未注册
            RuntimeError: 循环依赖或工厂函数失败
        """
        if name not in self._registrations:
            raise ValueError(f"依赖项 '{name}' 未注册")

        registration = self._registrations[name]
        if registration.resolved:
            return registration.instance

        if name in self._resolving:
            raise RuntimeError(f"检测到循环依赖: {name}")

        self._resolving.add(name)
        try:
            kwargs = {dep: self.resolve(dep) for dep in registration.dependencies}
            instance = registration.factory(**kwargs)
        except RuntimeError:
            raise
        except Exception as e:
            self.logger.error(f"❌ 依赖项解析失败: {name} - {e}", exc_info=True)
            raise RuntimeError(f"依赖项 '{name}' 解析失败: {e}") from e
        finally:
            self._resolving.discard(name)

        registration.instance = instance
        registration.resolved = True
        self.logger.debug(f"✅ 依赖项解析完成: {name}")
        return instance

    def validate_dependencies(self) -> bool:
        """
        验证依赖关系（全部已注册且无环）

        Returns:
            True 如果依赖关系有效

        Raises:
            RuntimeError: 缺失依赖或存在循环依赖
        """
        visited: Set[str] = set()
        stack: Set[str] = set()

        def visit(node: str) -> None:
            if node in stack:
                raise RuntimeError(f"检测到循环依赖，涉及组件: {node}")
            if node in visited:
                return

            stack.add(node)
            for dep in self._registrations[node].dependencies:
                if dep not in self._registrations:
                    raise RuntimeError(f"依赖项 '{dep}' 未注册（被 '{node}' 依赖）")
                visit(dep)
            stack.discard(node)
            visited.add(node)

        for name in self._registrations:
            visit(name)

        self.logger.info("✅ 依赖关系验证通过")
        return True
