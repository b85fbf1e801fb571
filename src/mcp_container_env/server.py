"""MCP server implementation."""
import asyncio
import json
import os
from typing import Dict, Any, List

import mcp.types as types
from mcp.server.lowlevel import Server
from mcp.server.models import InitializationOptions
from mcp.server import stdio

from mcp_container_env import __version__
from mcp_container_env.environments.registry import (
    get_environment,
    list_environments,
    register_environment,
    release_environment,
)
from mcp_container_env.environments.environment import Environment
from mcp_container_env.errors import ConfigurationError, ContainerEnvError, InvalidEnvError
from mcp_container_env.logging import configure_logging, get_logger

logger = get_logger("server")

ENV_ID_SCHEMA = {
    "type": "object",
    "properties": {
        "env_id": {"type": "string", "description": "Environment identifier"}
    },
    "required": ["env_id"],
}

tools = [
    types.Tool(
        name="environment_register",
        description="Register an environment from its declarative definition (id, instances, dockerNode)",
        inputSchema={
            "type": "object",
            "properties": {
                "definition": {
                    "type": "object",
                    "description": "Environment definition",
                }
            },
            "required": ["definition"],
        },
    ),
    types.Tool(
        name="environment_list",
        description="List registered environments",
        inputSchema={"type": "object", "properties": {}},
    ),
    types.Tool(
        name="environment_status",
        description="Get the aggregate status of an environment",
        inputSchema=ENV_ID_SCHEMA,
    ),
    types.Tool(
        name="environment_pause",
        description="Pause every instance of an environment",
        inputSchema=ENV_ID_SCHEMA,
    ),
    types.Tool(
        name="environment_unpause",
        description="Unpause every instance of an environment",
        inputSchema=ENV_ID_SCHEMA,
    ),
    types.Tool(
        name="environment_terminate",
        description="Remove every container, network, volume and log belonging to an environment",
        inputSchema=ENV_ID_SCHEMA,
    ),
]


def _text(payload: Dict[str, Any]) -> List[types.TextContent]:
    return [types.TextContent(type="text", text=json.dumps(payload))]


def _lookup(arguments: Dict[str, Any]) -> Environment:
    env_id = arguments.get("env_id")
    if not env_id:
        raise ConfigurationError("env_id is required")
    env = get_environment(env_id)
    if env is None:
        raise InvalidEnvError(env_id)
    return env


async def handle_tool_call(name: str, arguments: Dict[str, Any]) -> List[types.TextContent]:
    """Dispatch one tool call and wrap the outcome as JSON text content."""
    try:
        logger.debug("tool_call_received", tool=name, arguments=arguments)

        if name == "environment_register":
            env = register_environment(arguments["definition"])
            return _text({
                "success": True,
                "data": {"id": env.id, "instances": len(env.instances)},
            })

        elif name == "environment_list":
            return _text({"success": True, "data": {"environments": list_environments()}})

        elif name == "environment_status":
            env = _lookup(arguments)
            status = await env.get_status()
            return _text({"success": True, "data": {"id": env.id, "status": status.value}})

        elif name == "environment_pause":
            env = _lookup(arguments)
            status = await env.pause()
            return _text({"success": True, "data": {"id": env.id, "status": status.value}})

        elif name == "environment_unpause":
            env = _lookup(arguments)
            status = await env.unpause()
            return _text({"success": True, "data": {"id": env.id, "status": status.value}})

        elif name == "environment_terminate":
            env = _lookup(arguments)
            report = await env.reclaim()
            await release_environment(env)
            return _text({"success": True, "data": {"id": env.id, **report.to_dict()}})

        return _text({"success": False, "error": f"Unknown tool: {name}"})

    except ContainerEnvError as e:
        logger.warning("tool_call_failed", tool=name, error=str(e), code=e.code)
        return _text({"success": False, "error": str(e), "code": e.code, "details": e.details})
    except Exception as e:
        logger.warning("tool_call_failed", tool=name, error=str(e) or e.__class__.__name__)
        return _text({"success": False, "error": str(e) or e.__class__.__name__})


async def init_server() -> Server:
    logger.info("registered_tools", tools=[t.name for t in tools])

    server = Server("mcp-container-env")

    @server.list_tools()
    async def list_tools() -> List[types.Tool]:
        logger.debug("tools_requested")
        return tools

    @server.call_tool()
    async def call_tool(
        name: str, arguments: Dict[str, Any]
    ) -> list[types.TextContent | types.ImageContent | types.EmbeddedResource]:
        return await handle_tool_call(name, arguments or {})

    return server


async def serve() -> None:
    configure_logging(os.environ.get("MCP_CONTAINER_ENV_LOG_LEVEL", "INFO"))
    logger.info("starting_server")
    server = await init_server()
    async with stdio.stdio_server() as (read_stream, write_stream):
        init_options = InitializationOptions(
            server_name="mcp-container-env",
            server_version=__version__,
            capabilities=types.ServerCapabilities(
                tools=types.ToolsCapability(listChanged=False),
                logging=types.LoggingCapability(),
            ),
        )
        await server.run(read_stream, write_stream, init_options)


def main() -> None:
    """Run the MCP server."""
    asyncio.run(serve())
