"""
Master Config Diagnostic
"""

from typing import Optional, Tuple

from ..diagnostics import Diagnostic, DiagnosticError, DiagnosticResult
from .config_file import (
    ConfigFileError,
    ConfigReader,
    ConfigValidator,
    read_and_resolve,
    validate_master_config,
)

MASTER_CONFIG_CHECK_NAME = "MasterConfigCheck"


class MasterConfigCheck(Diagnostic):
    """Diagnostic to check that the master config file is valid."""

    NAME = MASTER_CONFIG_CHECK_NAME
    DESCRIPTION = "Check the master config file"

    def __init__(
        self,
        config_file: Optional[str],
        reader: ConfigReader = read_and_resolve,
        validator: ConfigValidator = validate_master_config,
    ):
        self.config_file = config_file or ""
        self.reader = reader
        self.validator = validator

    def can_run(self) -> Tuple[bool, Optional[DiagnosticError]]:
        if not self.config_file:
            return False, DiagnosticError("DH0000", "must have master config file")
        return True, None

    def check(self) -> DiagnosticResult:
        r = self.new_result()
        if not self.config_file:
            r.error("DH0000", "No master config file was specified")
            return r

        r.debug("DH0001", "Looking for master config file at '%s'", self.config_file)
        try:
            master_config = self.reader(self.config_file)
        except ConfigFileError as e:
            r.error("DH0002", "Could not read master config file '%s':\n(%s) %s",
                    self.config_file, type(e).__name__, e, err=e)
            return r

        r.info("DH0003", "Found a master config file: %s", self.config_file)

        for err in self.validator(master_config):
            r.error("DH0004", "Validation of master config file '%s' failed:\n(%s) %s",
                    self.config_file, type(err).__name__, err, err=err)
        return r
