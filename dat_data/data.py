# This file is part of the Geometry Dash Save Parser distribution.
# Copyright (c) 2025 The gd_dat_parse authors.
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, version 3.
#
# This program is distributed in the hope that it will be useful, but
# WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the GNU
# General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program. If not, see <http://www.gnu.org/licenses/>.

XOR_SAVE_KEY = 0x0B

# Base64 of the gzip magic (1f 8b 08).  Every obfuscated container begins with this once un-XORed.
GZIP_BASE64_MAGIC = b"H4sI"

# Depth of a <k> naming a level field, and the depth returned to when a level <d> closes.
#   plist(1) > dict(2) > d "LLM_01"(3) > d "k_N"(4) > k(5)
LEVEL_DATA_DEPTH = 5
LEVEL_END_DEPTH = 3

KEY_TAG = "k"
VALUE_TAGS = ("i", "s", "r")
BOOLEAN_TAGS = ("t", "f")
CONTAINER_TAGS = ("d", "dict")
BOOLEAN_XML_TYPE = "bool"

# (key, attribute, xmlType) in the order the game writes them.
LEVEL_KEYS = (
   ("k1", "levelId", "i"),
   ("k2", "levelName", "s"),
   ("k3", "descriptionB64", "s"),
   ("k4", "levelString", "s"), # Typically *huge*
   ("k5", "creator", "s"),
   ("k6", "userId", "i"),
   ("k8", "songId", "i"), # Official song.  Absent for custom songs.
   ("k18", "attempts", "i"),
   ("k19", "normalMode", BOOLEAN_XML_TYPE),
   ("k20", "practiceMode", BOOLEAN_XML_TYPE),
   ("k42", "original", "i"),
   ("k43", "twoPlayer", BOOLEAN_XML_TYPE),
)
LEVEL_KEY_TO_ATTRIBUTE = {key: attribute for (key, attribute, xmlType) in LEVEL_KEYS}

# Recent-tab array.  Not understood by the extractor and never written back.
UNSUPPORTED_ARRAY_KEY = "kI6"

ARRAY_MARKER_KEY = "_isArr"
LEVEL_LIST_KEY = "LLM_01"
LEVEL_LIST_FOOTER_KEY = "LLM_02"
LEVEL_LIST_FOOTER_VALUE = "35" # Transplanted from a real save.  Meaning unknown.
LEVEL_LABEL_PREFIX = "k_"
PLIST_ATTRIBUTES = (("version", "1.0"), ("gjver", "2.0"))
