"""
Tool dispatch layer: tool names, parameter structs, handlers and the dispatcher.
"""
