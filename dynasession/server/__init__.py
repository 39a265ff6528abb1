# Copyright (c) 2025 Bytedance Ltd. and/or its affiliates
# SPDX-License-Identifier: MIT

"""HTTP layer: the FastAPI application lives in ``dynasession.server.app``."""
