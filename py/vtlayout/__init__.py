# © 2021 Intel Corporation
# SPDX-License-Identifier: MPL-2.0
