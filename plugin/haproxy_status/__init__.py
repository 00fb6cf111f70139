"""HAProxy 服务状态检查插件。"""
__version__ = "1.0.0"
