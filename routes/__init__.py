"""HTTP routers for the FluidSDK MCP Server."""
