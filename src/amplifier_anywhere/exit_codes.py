"""
Exit codes for the amplifier-anywhere launcher and entrypoint.

Standardized exit codes following Unix conventions with semantic meaning.

Exit Code Semantics:
  0: Success - command completed successfully
  1: Not Found - project, data directory, build context or target missing
  2: Usage Error - bad flags, invalid inputs
  3: Config Error - no credentials, invalid generated configuration
  4: Tool Error - container runtime failed (build or launch)
  5: Prerequisite Error - no usable container runtime
  130: Cancelled - user cancelled operation (SIGINT)

Note: a successful launch exits with the container's own exit code, which
is passed through verbatim and is not one of the codes above.
"""

# Success
EXIT_SUCCESS = 0  # Command completed successfully

EXIT_NOT_FOUND = 1  # Project, data dir, build context or target missing
EXIT_USAGE = 2  # Invalid usage/arguments (Click default)
EXIT_CONFIG = 3  # Credentials or configuration error
EXIT_TOOL = 4  # Container runtime command failed
EXIT_PREREQ = 5  # Prerequisites not met (no Docker/Podman)

# Cancellation (SIGINT convention)
EXIT_CANCELLED = 130  # User cancelled operation (SIGINT)

