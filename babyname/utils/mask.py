"""
数据脱敏工具，用于日志输出和接口响应
"""


def mask_code(code: str) -> str:
    """
    授权码脱敏，只保留前缀和第一段

    BABY-A3F7-92D1-4E8C -> BABY-A3F7-****
    """
    if not code or len(code) < 16:
        return "****"
    parts = code.split("-")
    if len(parts) >= 4:
        return f"{parts[0]}-{parts[1]}-****"
    return f"{code[:8]}****"


def mask_ip(ip: str) -> str:
    """IPv4 保留前两段，其余格式整体打码"""
    if not ip:
        return "xxx.xxx.xxx.xxx"
    parts = ip.split(".")
    if len(parts) == 4:
        return f"{parts[0]}.{parts[1]}.xxx.xxx"
    return "xxx.xxx.xxx.xxx"


def mask_device_id(device_id: str) -> str:
    if not device_id or len(device_id) < 16:
        return "****"
    return f"{device_id[:8]}****{device_id[-8:]}"
