#!/usr/bin/env python
# coding: utf-8
import os
import sys
import argparse
import logging
from typing import Optional, Dict, List
from pydantic import Field
from fastmcp import FastMCP
from fastmcp.server.auth.providers.jwt import JWTVerifier
from fastmcp.server.middleware.logging import LoggingMiddleware
from fastmcp.server.middleware.timing import TimingMiddleware
from fastmcp.server.middleware.rate_limiting import RateLimitingMiddleware
from fastmcp.server.middleware.error_handling import ErrorHandlingMiddleware
from prp_manager.prp_manager import LOGGER_NAME, setup_logging, PRPManager
from prp_manager.models import ValidationLevel
from prp_manager.utils import to_boolean, to_float, to_integer

logger = logging.getLogger(LOGGER_NAME)

DEFAULT_WORKSPACE = os.environ.get("PRP_MANAGER_WORKSPACE", None)
DEFAULT_PROGRESS_DIR = os.environ.get("PRP_MANAGER_PROGRESS_DIR", None)
DEFAULT_THREADS = to_integer(os.environ.get("PRP_MANAGER_THREADS", "4"))
DEFAULT_FAIL_FAST = to_boolean(os.environ.get("PRP_MANAGER_FAIL_FAST", "True"))
DEFAULT_TIMEOUT = to_float(os.environ.get("PRP_MANAGER_TIMEOUT", "600"))


def get_manager(workspace: Optional[str] = None) -> PRPManager:
    workspace = workspace or DEFAULT_WORKSPACE
    if workspace and not os.path.isdir(workspace):
        raise FileNotFoundError(f"Workspace not found: {workspace}")
    return PRPManager(
        workspace=workspace,
        progress_directory=DEFAULT_PROGRESS_DIR,
        threads=DEFAULT_THREADS,
        fail_fast=DEFAULT_FAIL_FAST,
        timeout=DEFAULT_TIMEOUT,
        is_mcp_server=True,
    )


def register_tools(mcp: FastMCP) -> None:
    @mcp.tool(
        annotations={
            "title": "Initialize Context Engineering Project",
            "readOnlyHint": False,
            "destructiveHint": False,
            "idempotentHint": True,
            "openWorldHint": False,
        },
        tags={"project"},
    )
    async def init_project(
        workspace: Optional[str] = Field(
            description="The project directory. Defaults to PRP_MANAGER_WORKSPACE env variable.",
            default=DEFAULT_WORKSPACE,
        ),
        overwrite: bool = Field(
            description="Replace starter files that already exist.", default=False
        ),
    ) -> Dict:
        """
        Creates the PRPs/, examples/, docs/ and scripts/ layout with the PRP base template,
        INITIAL.md, CLAUDE.md and the generate-prp/execute-prp command files.
        """
        logger.debug(f"Initializing project in {workspace}")
        try:
            return get_manager(workspace).init_project(overwrite=overwrite).model_dump()
        except Exception as e:
            logger.error(f"Error in init_project: {e}")
            raise

    @mcp.tool(
        annotations={
            "title": "Create PRP",
            "readOnlyHint": False,
            "destructiveHint": False,
            "idempotentHint": False,
            "openWorldHint": False,
        },
        tags={"prp"},
    )
    async def create_prp(
        name: str = Field(description="Title of the PRP, e.g. 'User authentication'"),
        feature: Optional[str] = Field(
            description="Feature description used for the Goal and What sections.",
            default=None,
        ),
        overwrite: bool = Field(
            description="Replace an existing PRP with the same name.", default=False
        ),
        workspace: Optional[str] = Field(
            description="The project directory. Defaults to PRP_MANAGER_WORKSPACE env variable.",
            default=DEFAULT_WORKSPACE,
        ),
    ) -> Dict:
        """
        Creates a new PRP under PRPs/ from the base template.
        Returns the path of the created PRP
        """
        logger.debug(f"Creating PRP: {name}")
        try:
            return (
                get_manager(workspace)
                .create_prp(name=name, feature=feature or "", overwrite=overwrite)
                .model_dump()
            )
        except Exception as e:
            logger.error(f"Error in create_prp: {e}")
            raise

    @mcp.tool(
        annotations={
            "title": "Generate PRP From INITIAL.md",
            "readOnlyHint": False,
            "destructiveHint": False,
            "idempotentHint": False,
            "openWorldHint": False,
        },
        tags={"prp"},
    )
    async def generate_prp(
        initial: str = Field(
            description="Path of the feature request, relative to the workspace.",
            default="INITIAL.md",
        ),
        name: Optional[str] = Field(
            description="PRP name. Defaults to the first line of the FEATURE section.",
            default=None,
        ),
        overwrite: bool = Field(
            description="Replace an existing PRP with the same name.", default=False
        ),
        workspace: Optional[str] = Field(
            description="The project directory. Defaults to PRP_MANAGER_WORKSPACE env variable.",
            default=DEFAULT_WORKSPACE,
        ),
    ) -> Dict:
        """
        Scaffolds a PRP from the FEATURE, EXAMPLES, DOCUMENTATION and OTHER CONSIDERATIONS
        sections of a feature request. The result still needs research to be filled in.
        """
        logger.debug(f"Generating PRP from {initial}")
        try:
            return (
                get_manager(workspace)
                .generate_prp(initial=initial, name=name, overwrite=overwrite)
                .model_dump()
            )
        except Exception as e:
            logger.error(f"Error in generate_prp: {e}")
            raise

    @mcp.tool(
        annotations={
            "title": "List PRPs",
            "readOnlyHint": True,
            "destructiveHint": False,
            "idempotentHint": True,
            "openWorldHint": False,
        },
        tags={"prp"},
    )
    async def list_prps(
        workspace: Optional[str] = Field(
            description="The project directory. Defaults to PRP_MANAGER_WORKSPACE env variable.",
            default=DEFAULT_WORKSPACE,
        ),
    ) -> List[str]:
        """
        Lists the PRPs of the project, excluding templates.
        """
        try:
            return get_manager(workspace).list_prps()
        except Exception as e:
            logger.error(f"Error in list_prps: {e}")
            raise

    @mcp.tool(
        annotations={
            "title": "Get PRP",
            "readOnlyHint": True,
            "destructiveHint": False,
            "idempotentHint": True,
            "openWorldHint": False,
        },
        tags={"prp"},
    )
    async def get_prp(
        name: str = Field(description="PRP name or path, e.g. 'user-auth' or 'PRPs/user-auth.md'"),
        parsed: bool = Field(
            description="Return the parsed sections, tasks and validation levels instead of the raw text.",
            default=False,
        ),
        workspace: Optional[str] = Field(
            description="The project directory. Defaults to PRP_MANAGER_WORKSPACE env variable.",
            default=DEFAULT_WORKSPACE,
        ),
    ) -> Dict:
        """
        Retrieves a PRP, either as raw Markdown or parsed into its parts.
        """
        try:
            manager = get_manager(workspace)
            if parsed:
                return manager.parse_prp(name).model_dump()
            return manager.get_prp(name).model_dump()
        except Exception as e:
            logger.error(f"Error in get_prp: {e}")
            raise

    @mcp.tool(
        annotations={
            "title": "Lint PRP Or Document",
            "readOnlyHint": True,
            "destructiveHint": False,
            "idempotentHint": True,
            "openWorldHint": False,
        },
        tags={"prp", "docs"},
    )
    async def lint_prp(
        name: Optional[str] = Field(
            description="PRP name or document path. Lints every PRP when empty.",
            default=None,
        ),
        required_sections: Optional[List[str]] = Field(
            description="Level-2 headings the document must contain.", default=None
        ),
        required_phrases: Optional[List[str]] = Field(
            description="Substrings the document must contain, e.g. ['Overview'].",
            default=None,
        ),
        workspace: Optional[str] = Field(
            description="The project directory. Defaults to PRP_MANAGER_WORKSPACE env variable.",
            default=DEFAULT_WORKSPACE,
        ),
    ) -> List[Dict]:
        """
        Checks PRPs and docs for missing sections, unfilled template placeholders,
        unclosed code fences and missing validation commands.
        """
        try:
            manager = get_manager(workspace)
            if not name:
                reports = manager.lint_prps()
            else:
                try:
                    path = manager.resolve_prp_path(name)
                except FileNotFoundError:
                    path = name
                reports = [
                    manager.lint_document(
                        path,
                        required_sections=required_sections,
                        required_phrases=required_phrases,
                    )
                ]
            return [
                dict(report.model_dump(), passed=report.passed) for report in reports
            ]
        except Exception as e:
            logger.error(f"Error in lint_prp: {e}")
            raise

    @mcp.tool(
        annotations={
            "title": "Run Validation Loop",
            "readOnlyHint": False,
            "destructiveHint": False,
            "idempotentHint": False,
            "openWorldHint": False,
        },
        tags={"validation"},
    )
    async def run_validation(
        prp: Optional[str] = Field(
            description="PRP whose Validation Loop is run and whose progress is updated.",
            default=None,
        ),
        commands: Optional[List[str]] = Field(
            description="Run these commands as a single level instead of the PRP's levels.",
            default=None,
        ),
        fail_fast: bool = Field(
            description="Skip later levels after a required level fails. Defaults to PRP_MANAGER_FAIL_FAST env variable.",
            default=DEFAULT_FAIL_FAST,
        ),
        workspace: Optional[str] = Field(
            description="The project directory. Defaults to PRP_MANAGER_WORKSPACE env variable.",
            default=DEFAULT_WORKSPACE,
        ),
    ) -> Dict:
        """
        Runs lint, type-check and test commands level by level.
        Returns each command's output so failures can be fixed and the loop re-run.
        """
        logger.debug(f"Running validation for {prp or 'workspace'}")
        try:
            levels = None
            if commands:
                levels = [ValidationLevel(name="Custom", commands=commands)]
            report = get_manager(workspace).run_validation(
                prp=prp, levels=levels, fail_fast=fail_fast
            )
            return dict(report.model_dump(), passed=report.passed, summary=report.summary())
        except Exception as e:
            logger.error(f"Error in run_validation: {e}")
            raise

    @mcp.tool(
        annotations={
            "title": "Initialize PRP Progress",
            "readOnlyHint": False,
            "destructiveHint": False,
            "idempotentHint": True,
            "openWorldHint": False,
        },
        tags={"progress"},
    )
    async def init_progress(
        prp: str = Field(description="PRP name about to be implemented."),
        steps: Optional[List[str]] = Field(
            description="Step names to track. Defaults to the PRP's blueprint tasks plus 'validation'.",
            default=None,
        ),
        overwrite: bool = Field(
            description="Discard an existing tracker and start again.", default=False
        ),
        workspace: Optional[str] = Field(
            description="The project directory. Defaults to PRP_MANAGER_WORKSPACE env variable.",
            default=DEFAULT_WORKSPACE,
        ),
    ) -> Dict:
        """
        Seeds the progress tracker of a PRP before implementation starts.
        An existing tracker is returned unchanged unless overwrite is set.
        """
        try:
            return (
                get_manager(workspace)
                .init_progress(prp, steps=steps, overwrite=overwrite)
                .model_dump()
            )
        except Exception as e:
            logger.error(f"Error in init_progress: {e}")
            raise

    @mcp.tool(
        annotations={
            "title": "Update PRP Progress",
            "readOnlyHint": False,
            "destructiveHint": False,
            "idempotentHint": True,
            "openWorldHint": False,
        },
        tags={"progress"},
    )
    async def update_progress(
        prp: str = Field(description="PRP name being implemented."),
        step: str = Field(description="Step name, usually a task from the blueprint."),
        percentage: float = Field(description="Completion of the step, from 0 to 100."),
        notes: Optional[str] = Field(description="Optional notes for the step.", default=None),
        workspace: Optional[str] = Field(
            description="The project directory. Defaults to PRP_MANAGER_WORKSPACE env variable.",
            default=DEFAULT_WORKSPACE,
        ),
    ) -> Dict:
        """
        Records the completion percentage of a step in the PRP's progress tracker.
        Returns the updated tracker
        """
        try:
            return (
                get_manager(workspace)
                .update_progress(prp, step, percentage, notes=notes)
                .model_dump()
            )
        except Exception as e:
            logger.error(f"Error in update_progress: {e}")
            raise

    @mcp.tool(
        annotations={
            "title": "Get Progress Dashboard",
            "readOnlyHint": True,
            "destructiveHint": False,
            "idempotentHint": True,
            "openWorldHint": False,
        },
        tags={"progress"},
    )
    async def get_dashboard(
        prp: str = Field(description="PRP name being implemented."),
        workspace: Optional[str] = Field(
            description="The project directory. Defaults to PRP_MANAGER_WORKSPACE env variable.",
            default=DEFAULT_WORKSPACE,
        ),
    ) -> str:
        """
        Renders the text progress dashboard of a PRP.
        """
        try:
            return get_manager(workspace).render_dashboard(prp)
        except Exception as e:
            logger.error(f"Error in get_dashboard: {e}")
            raise

    @mcp.tool(
        annotations={
            "title": "Export Progress Report",
            "readOnlyHint": False,
            "destructiveHint": False,
            "idempotentHint": True,
            "openWorldHint": False,
        },
        tags={"progress"},
    )
    async def export_progress(
        prp: str = Field(description="PRP name being implemented."),
        output: Optional[str] = Field(
            description="Markdown file to write, relative to the workspace. Only returned when empty.",
            default=None,
        ),
        workspace: Optional[str] = Field(
            description="The project directory. Defaults to PRP_MANAGER_WORKSPACE env variable.",
            default=DEFAULT_WORKSPACE,
        ),
    ) -> str:
        """
        Exports the PRP's progress as a Markdown report.
        """
        try:
            return get_manager(workspace).export_report(prp, output=output)
        except Exception as e:
            logger.error(f"Error in export_progress: {e}")
            raise


def prp_manager_mcp():
    parser = argparse.ArgumentParser(description="PRP Manager MCP Utility")
    parser.add_argument(
        "-t",
        "--transport",
        default="stdio",
        choices=["stdio", "http", "sse"],
        help="Transport method: 'stdio', 'http', or 'sse' [legacy] (default: stdio)",
    )
    parser.add_argument(
        "-s",
        "--host",
        default="0.0.0.0",
        help="Host address for HTTP transport (default: 0.0.0.0)",
    )
    parser.add_argument(
        "-p",
        "--port",
        type=int,
        default=8000,
        help="Port number for HTTP transport (default: 8000)",
    )
    parser.add_argument(
        "--auth-type",
        default="none",
        choices=["none", "jwt"],
        help="Authentication type for MCP server: 'none' (disabled) or 'jwt' (external token verification) (default: none)",
    )
    parser.add_argument(
        "--token-jwks-uri", default=None, help="JWKS URI for JWT verification"
    )
    parser.add_argument(
        "--token-issuer", default=None, help="Issuer for JWT verification"
    )
    parser.add_argument(
        "--token-audience", default=None, help="Audience for JWT verification"
    )
    parser.add_argument(
        "--log-file",
        default="prp_manager_mcp.log",
        help="File receiving ERROR logs (default: prp_manager_mcp.log)",
    )

    args = parser.parse_args()

    if args.port < 0 or args.port > 65535:
        print(f"Error: Port {args.port} is out of valid range (0-65535).")
        sys.exit(1)

    setup_logging(is_mcp_server=True, log_file=args.log_file)

    auth = None
    if args.auth_type == "jwt":
        if not (args.token_jwks_uri and args.token_issuer and args.token_audience):
            print(
                "Error: jwt requires --token-jwks-uri, --token-issuer, --token-audience"
            )
            sys.exit(1)
        auth = JWTVerifier(
            jwks_uri=args.token_jwks_uri,
            issuer=args.token_issuer,
            audience=args.token_audience,
        )

    mcp = FastMCP(name="PRPManager")
    mcp.auth = auth
    register_tools(mcp)
    mcp.add_middleware(
        ErrorHandlingMiddleware(include_traceback=True, transform_errors=True)
    )
    mcp.add_middleware(
        RateLimitingMiddleware(max_requests_per_second=10.0, burst_capacity=20)
    )
    mcp.add_middleware(TimingMiddleware())
    mcp.add_middleware(LoggingMiddleware())

    if args.transport == "stdio":
        mcp.run(transport="stdio")
    elif args.transport == "http":
        mcp.run(transport="http", host=args.host, port=args.port)
    elif args.transport == "sse":
        mcp.run(transport="sse", host=args.host, port=args.port)
    else:
        logger.error("Transport not supported")
        sys.exit(1)


if __name__ == "__main__":
    prp_manager_mcp()
