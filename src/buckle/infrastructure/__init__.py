"""Infrastructure layer — filesystem, package loading, graph, processes.

This layer touches the host: it reads config roots, runs scripts, and
writes files. It depends on the domain layer, the config section models, and
third-party libs (NetworkX, Jinja2, ruamel.yaml). It never imports from
services, commands, or output.
"""
