"""
Node Config Diagnostic
"""

from typing import Optional, Tuple

from ..diagnostics import Diagnostic, DiagnosticError, DiagnosticResult
from .config_file import (
    ConfigFileError,
    ConfigReader,
    ConfigValidator,
    read_and_resolve,
    validate_node_config,
)

NODE_CONFIG_CHECK_NAME = "NodeConfigCheck"


class NodeConfigCheck(Diagnostic):
    """Diagnostic to check that the node config file is valid."""

    NAME = NODE_CONFIG_CHECK_NAME
    DESCRIPTION = "Check the node config file"

    def __init__(
        self,
        config_file: Optional[str],
        reader: ConfigReader = read_and_resolve,
        validator: ConfigValidator = validate_node_config,
    ):
        self.config_file = config_file or ""
        self.reader = reader
        self.validator = validator

    def can_run(self) -> Tuple[bool, Optional[DiagnosticError]]:
        if not self.config_file:
            return False, DiagnosticError("DH1000", "must have node config file")
        return True, None

    def check(self) -> DiagnosticResult:
        r = self.new_result()
        if not self.config_file:
            r.error("DH1000", "No node config file was specified")
            return r

        r.debug("DH1001", "Looking for node config file at '%s'", self.config_file)
        try:
            node_config = self.reader(self.config_file)
        except ConfigFileError as e:
            r.error("DH1002", "Could not read node config file '%s':\n(%s) %s",
                    self.config_file, type(e).__name__, e, err=e)
            return r

        r.info("DH1003", "Found a node config file: %s", self.config_file)

        for err in self.validator(node_config):
            r.error("DH1004", "Validation of node config file '%s' failed:\n(%s) %s",
                    self.config_file, type(err).__name__, err, err=err)
        return r
