"""
核心模块

- 存储契约、实体与结果类型
- 命令设置
- 依赖注入容器
- 事件处理
"""
