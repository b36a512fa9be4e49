"""Filesystem operations for MCP GitFS Server"""
