"""
WebDriver MCP Server

MCP server for mobile app automation over Appium, with locator generation
for the elements on screen.
"""

__version__ = "0.1.0"
