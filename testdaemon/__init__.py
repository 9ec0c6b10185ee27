"""testdaemon: project detection and container bring-up for test tooling.

Public API:
    ProjectDetector(...).detect_all(path) -> DetectionResults
    CommandExecutor(...).execute(command, options) -> CommandOutcome
    ContainerManager(...).setup(options) -> SetupResult
"""

__version__ = "0.1.0"
