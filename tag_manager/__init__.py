# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Azure Tag Manager - tag governance engine for Azure resources."""

__version__ = "1.0.0"
