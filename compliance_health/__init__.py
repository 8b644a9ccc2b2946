# SPDX-License-Identifier: MIT

"""Read-only status and diagnosis for the OpenShift Compliance Operator."""

__version__ = "1.0.0"
