"""
嵌入消息构建器

提供统一的嵌入消息构建功能：
- 标准化的消息格式
- 主题色彩管理
- 命令、角色和预览的消息模板
"""

import discord
from typing import List

from duquebot.core.interfaces import ChannelConfig, TriggerMatch

# 嵌入消息描述最大长度
EMBED_DESCRIPTION_LIMIT = 4096


class EmbedBuilder:
    """
    嵌入消息构建器

    提供统一的嵌入消息构建方法，确保UI一致性
    """

    # 主题色彩
    COLORS = {
        'success': discord.Color.green(),
        'error': discord.Color.red(),
        'warning': discord.Color.orange(),
        'info': discord.Color.blue(),
        'neutral': discord.Color.light_grey()
    }

    @classmethod
    def create_success_embed(cls, title: str, description: str) -> discord.Embed:
        """
        创建成功消息嵌入

        Args:
            title: 标题
            description: 描述

        Returns:
            Discord嵌入消息
        """
        return discord.Embed(
            title=f"✅ {title}",
            description=description,
            color=cls.COLORS['success']
        )

    @classmethod
    def create_error_embed(cls, title: str, description: str) -> discord.Embed:
        """
        创建错误消息嵌入

        Args:
            title: 标题
            description: 描述

        Returns:
            Discord嵌入消息
        """
        return discord.Embed(
            title=f"❌ {title}",
            description=description,
            color=cls.COLORS['error']
        )

    @classmethod
    def create_warning_embed(cls, title: str, description: str) -> discord.Embed:
        """创建警告消息嵌入"""
        return discord.Embed(
            title=f"⚠️ {title}",
            description=description,
            color=cls.COLORS['warning']
        )

    @classmethod
    def create_info_embed(cls, title: str, description: str) -> discord.Embed:
        """创建信息消息嵌入"""
        return discord.Embed(
            title=f"ℹ️ {title}",
            description=description,
            color=cls.COLORS['info']
        )

    @classmethod
    def create_roles_embed(cls, config: ChannelConfig) -> discord.Embed:
        """
        创建编辑者角色列表嵌入

        Args:
            config: 频道配置（角色列表非空）

        Returns:
            Discord嵌入消息
        """
        role_list = "\n".join(f"• <@&{role_id}>" for role_id in config.editor_role_ids)
        embed = cls.create_info_embed("本频道的编辑者角色", role_list)
        embed.set_footer(text=f"触发前缀: {config.trigger_prefix if config.trigger_prefix is not None else '!'}")
        return embed

    @classmethod
    def create_preview_embed(cls, match: TriggerMatch) -> discord.Embed:
        """
        创建触发预览嵌入

        Args:
            match: 触发词解析结果

        Returns:
            Discord嵌入消息
        """
        embed = cls.create_info_embed(
            "触发预览",
            cls.truncate(match.response, EMBED_DESCRIPTION_LIMIT)
        )
        embed.add_field(name="触发命令", value=f"`{match.trigger_prefix}{match.trigger}`", inline=True)
        embed.add_field(name="响应长度", value=f"{len(match.response)} 字符", inline=True)
        return embed

    @classmethod
    def create_help_embed(cls, sections: List[tuple]) -> discord.Embed:
        """
        创建帮助嵌入

        Args:
            sections: (字段名, 字段内容) 列表

        Returns:
            Discord嵌入消息
        """
        embed = discord.Embed(
            title="📘 Duque Bot 命令说明",
            description="在频道内创建自定义命令，使用前缀触发（例如 `!hello`）。",
            color=cls.COLORS['info']
        )
        for name, value in sections:
            embed.add_field(name=name, value=value, inline=False)
        embed.set_footer(text="Duque Bot • 基于 Python & discord.py")
        return embed

    @staticmethod
    def truncate(text: str, limit: int) -> str:
        """截断超长文本"""
        if len(text) <= limit:
            return text
        return text[:limit - 1] + "…"
