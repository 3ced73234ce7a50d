"""
Capture of agent tools and conversations from studio web pages, and
conversion to OpenAI chat completion requests.

Subpackages:
    extract: locate tools, agent nodes and conversations in the
        snapshot of a host page
    convert: convert studio tools and conversations to an OpenAI
        request body
    config: settings read from config.toml and the environment
    utils: logging and file helpers
"""
