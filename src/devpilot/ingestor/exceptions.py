"""devpilot 异常体系

采集管线中几乎所有错误都是可恢复的：记录日志后跳过当前单元继续执行。
只有启动阶段获取账本句柄失败属于致命错误。
"""


class DevpilotError(Exception):
    """devpilot 基础异常"""

    def __init__(self, message: str, recoverable: bool = True) -> None:
        """
        Args:
            message: 错误描述
            recoverable: 是否可通过跳过当前单元或下一轮重试恢复
        """
        super().__init__(message)
        self.recoverable = recoverable


class GitCommandError(DevpilotError):
    """git 命令执行失败（非零退出码或 git 不可用）

    此异常由提交采集器捕获，只跳过对应的工作单元。
    """

    def __init__(
        self,
        args: list[str],
        returncode: int | None,
        stderr: str = "",
    ) -> None:
        """
        Args:
            args: git 子命令参数
            returncode: 退出码，进程无法启动时为 None
            stderr: 标准错误输出
        """
        detail = stderr.strip() or "no output"
        super().__init__(
            f"git {' '.join(args)} 失败 (exit={returncode}): {detail}",
            recoverable=True,
        )
        self.git_args = args
        self.returncode = returncode
        self.stderr = stderr


class LedgerUnavailableError(DevpilotError):
    """事件账本无法打开

    启动阶段唯一允许终止进程的错误。
    """

    def __init__(self, db_path: str, original_error: Exception) -> None:
        super().__init__(
            f"无法打开事件账本: {db_path} -- {original_error}",
            recoverable=False,
        )
        self.db_path = db_path
        self.original_error = original_error
