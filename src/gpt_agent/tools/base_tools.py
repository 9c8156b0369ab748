"""Built-in tools: files, shell commands, HTTP requests and request completion."""

from __future__ import annotations

from gpt_agent.services.http_service import make_request
from gpt_agent.services.shell_service import run_command as run_shell_command
from gpt_agent.tools import END_CONVERSATION, ExecutionContext, Tool

FILE_DOES_NOT_EXIST = "<file does not exist>"
DONE = "<done>"
USER_CANCELED = "<user canceled request>"

LIST_FILES = "list_files"
READ_FILE = "read_file"
WRITE_FILE = "write_file"
RUN_COMMAND = "run_command"
MAKE_HTTP_REQUEST = "make_http_request"
COMPLETE_REQUEST = "complete_request"


def list_files(args: dict, ctx: ExecutionContext) -> str:
    files = ctx.service.list_files()
    return "\n".join(files) if files else "(no files)"


def read_file(args: dict, ctx: ExecutionContext) -> str:
    path = args["path"]
    if not ctx.service.file_exists(path):
        return FILE_DOES_NOT_EXIST
    return ctx.service.read_file(path)


def write_file(args: dict, ctx: ExecutionContext) -> str:
    path = args["path"]
    content = args["content"]
    # Blank content means "remove this file"
    if not content.strip():
        ctx.service.delete_file(path)
    else:
        ctx.service.write_file(path, content)
    return DONE


def run_command(args: dict, ctx: ExecutionContext) -> str:
    command = args["command"]
    if not ctx.confirm(f"Run command: {command}"):
        return USER_CANCELED
    return run_shell_command(command, ctx.service.work_dir).to_text()


def make_http_request(args: dict, ctx: ExecutionContext) -> str:
    kwargs = {"headers": args.get("headers")}
    if "body" in args:
        kwargs["body"] = args["body"]
    return make_request(args["method"], args["url"], **kwargs)


def complete_request(args: dict, ctx: ExecutionContext) -> str:
    return END_CONVERSATION


def create_base_tools() -> list[Tool]:
    return [
        Tool(
            name=LIST_FILES,
            description="List all files in the working directory recursively (ignored files are skipped).",
            parameters={"type": "object", "properties": {}},
            execute=list_files,
        ),
        Tool(
            name=READ_FILE,
            description="Read a text file. The path is relative to the working directory.",
            parameters={
                "type": "object",
                "properties": {
                    "path": {"type": "string", "description": "Relative file path"},
                },
                "required": ["path"],
            },
            execute=read_file,
        ),
        Tool(
            name=WRITE_FILE,
            description=(
                "Create or overwrite a file with the given content, creating parent "
                "directories as needed. Empty content deletes the file."
            ),
            parameters={
                "type": "object",
                "properties": {
                    "path": {"type": "string", "description": "Relative file path"},
                    "content": {"type": "string", "description": "Full new file content"},
                },
                "required": ["path", "content"],
            },
            execute=write_file,
        ),
        Tool(
            name=RUN_COMMAND,
            description=(
                "Run a shell command in the working directory. The user must approve it "
                "first. Returns the exit status, stdout and stderr."
            ),
            parameters={
                "type": "object",
                "properties": {
                    "command": {"type": "string", "description": "Shell command to run"},
                },
                "required": ["command"],
            },
            execute=run_command,
        ),
        Tool(
            name=MAKE_HTTP_REQUEST,
            description=(
                "Send an HTTP request. Returns the status code and response body; "
                "error statuses are returned, not raised."
            ),
            parameters={
                "type": "object",
                "properties": {
                    "method": {"type": "string", "description": "HTTP method, e.g. GET or POST"},
                    "url": {"type": "string", "description": "Absolute URL"},
                    "headers": {
                        "type": "object",
                        "additionalProperties": {"type": "string"},
                        "description": "Optional request headers",
                    },
                    "body": {"description": "Optional JSON body"},
                },
                "required": ["method", "url"],
            },
            execute=make_http_request,
        ),
        Tool(
            name=COMPLETE_REQUEST,
            description="Call this when you are done helping the user with their request.",
            parameters={
                "type": "object",
                "properties": {
                    "summary": {"type": "string", "description": "Short summary of what was done"},
                },
                "required": ["summary"],
            },
            execute=complete_request,
        ),
    ]
