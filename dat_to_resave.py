#!/usr/bin/python3
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

import base64
import sys
import zlib
from xml.sax.saxutils import escape, quoteattr
from dat_data.data import BOOLEAN_XML_TYPE, LEVEL_KEYS, UNSUPPORTED_ARRAY_KEY
import dat_data.data
import dat_parse

XML_DECLARATION = '<?xml version="1.0" encoding="utf-8"?>'
XML_ESCAPES = {"\r": "&#13;"}

def addKey(key: str) -> str:
   return f"<k>{escape(key, XML_ESCAPES)}</k>"

def addValue(xmlType: str, value: str) -> str:
   if xmlType == BOOLEAN_XML_TYPE:
      # Anything other than exactly "t" is written as false.
      if value == "t":
         return "<t />"
      return "<f />"
   return f"<{xmlType}>{escape(value, XML_ESCAPES)}</{xmlType}>"

def addField(key: str, xmlType: str, value: str) -> str:
   return addKey(key) + addValue(xmlType, value)

def addLevel(level: dat_parse.Level) -> str:
   data = []
   for (key, attribute, xmlType) in LEVEL_KEYS:
      value = getattr(level, attribute)
      if value is not None:
         data.append(addField(key, xmlType, value))

   for (key, value, xmlType) in level.extra:
      if key == UNSUPPORTED_ARRAY_KEY:
         continue
      data.append(addField(key, xmlType, value))
   return "".join(data)

def addHeader() -> str:
   attributes = "".join(f" {name}={quoteattr(value)}" for (name, value) in dat_data.data.PLIST_ATTRIBUTES)
   return f"<plist{attributes}><dict>" + addKey(dat_data.data.LEVEL_LIST_KEY) + "<d>" + addField(dat_data.data.ARRAY_MARKER_KEY, BOOLEAN_XML_TYPE, "t")

def addFooter() -> str:
   return "</d>" + addField(dat_data.data.LEVEL_LIST_FOOTER_KEY, "i", dat_data.data.LEVEL_LIST_FOOTER_VALUE) + "</dict></plist>"

def xmlFromLevelList(levels) -> str:
   data = [XML_DECLARATION, addHeader()]
   for (idx, level) in enumerate(levels):
      data.append(addKey(f"{dat_data.data.LEVEL_LABEL_PREFIX}{idx}"))
      data.append("<d>")
      data.append(addLevel(level))
      data.append("</d>")
   data.append(addFooter())
   return "".join(data)

def encodeSaveText(text: str) -> bytes:
   compressor = zlib.compressobj(wbits=16 + zlib.MAX_WBITS)
   compressed = compressor.compress(text.encode("utf-8")) + compressor.flush()
   return dat_parse.xorBytes(base64.urlsafe_b64encode(compressed))

def saveFile(levels, outFilename: str) -> None:
   with open(outFilename, "wb") as fout:
      fout.write(encodeSaveText(xmlFromLevelList(levels)))

if __name__ == '__main__':

   if len(sys.argv) != 3:
      print("USAGE: dat_to_resave.py <input-file> <output-file>")
      exit(1)

   inFilename = sys.argv[1]
   outFilename = sys.argv[2]

   print("Parsing save file")
   levels = dat_parse.readFullSaveFile(inFilename)

   print(f"Recreating save file with {len(levels)} levels")
   saveFile(levels, outFilename)

   exit(0)
