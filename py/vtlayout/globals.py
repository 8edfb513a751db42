# © 2021 Intel Corporation
# SPDX-License-Identifier: MPL-2.0

# Global variables

# Size in bytes of one vtable slot. Offsets handed to code generation
# are expressed in bytes as slot offset times word_size.
word_size = 8

# all warnings are disabled by the -w flag
ignore_all_warnings = False

# Number of worker threads used to lay out implementing types
jobs = 1
