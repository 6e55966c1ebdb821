#!/usr/bin/env python3
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

import copy
import json
import os
import sys

import dat_parse
import dat_to_resave
import dat_tree
import dat_data.data

VERIFY_CREATED_SAVE_FILES = False

def toJSON(object):
   if object is None or isinstance(object, (str, int, float, bool)):
      return object

   if isinstance(object, (tuple, list)):
      value = []
      for element in object:
         value.append(toJSON(element))
      return value

   if isinstance(object, dict):
      value = {}
      for key in object:
         value[key] = toJSON(object[key])
      return value

   if isinstance(object, dat_parse.Level):
      jdata = {}
      for (key, attribute, xmlType) in dat_data.data.LEVEL_KEYS:
         jdata[attribute] = getattr(object, attribute)
      jdata["extra"] = toJSON(object.extra)
      return jdata

   jdata = {}
   for element in object.__dict__:
      jdata[element] = toJSON(object.__dict__[element])
   return jdata

def fromJSON(object):
   if object is None or isinstance(object, (str, int, float, bool)):
      return object

   if isinstance(object, dict) and ("extra" in object or any(attribute in object for (key, attribute, xmlType) in dat_data.data.LEVEL_KEYS)):
      level = dat_parse.Level()
      for (key, attribute, xmlType) in dat_data.data.LEVEL_KEYS:
         value = object.get(attribute)
         if value is not None:
            value = str(value)
         setattr(level, attribute, value)
      for (key, value, xmlType) in object.get("extra", []):
         level.extra.append((key, value, xmlType))
      return level

   if isinstance(object, (tuple, list)):
      value = []
      for element in object:
         value.append(fromJSON(element))
      return value

   raise dat_parse.ParseError(f"Unable to convert JSON object to a level: {object}")

def findLevel(levels: list, levelIdOrIndex: str):
   for level in levels:
      if level.levelId == levelIdOrIndex:
         return level
   if levelIdOrIndex.isdigit() and int(levelIdOrIndex) < len(levels):
      return levels[int(levelIdOrIndex)]
   return None

def writeSaveFile(levels: list, outFilename: str) -> None:
   print(f"Writing {outFilename}")
   dat_to_resave.saveFile(levels, outFilename)
   if VERIFY_CREATED_SAVE_FILES:
      print("Verifying created save file")
      verifyLevels = dat_parse.readFullSaveFile(outFilename)
      expectedLevels = []
      for level in levels:
         expectedLevel = copy.copy(level)
         expectedLevel.extra = [field for field in level.extra if field[0] != dat_data.data.UNSUPPORTED_ARRAY_KEY]
         expectedLevels.append(expectedLevel)
      if verifyLevels != expectedLevels:
         print(f"ERROR: Created save file '{outFilename}' does not parse back to the same levels.", file=sys.stderr)

def printUsage() -> None:
   print()
   print("USAGE:")
   print("   py dat_cli.py --info <save-filename>")
   print("   py dat_cli.py --list-levels <save-filename>")
   print("   py dat_cli.py --to-xml <save-filename> <output-xml-filename>")
   print("   py dat_cli.py --from-xml <input-xml-filename> <new-save-filename>")
   print("   py dat_cli.py --to-json <save-filename> <output-json-filename>")
   print("   py dat_cli.py --from-json <input-json-filename> <new-save-filename>")
   print("   py dat_cli.py --to-tree-json <save-filename> <output-json-filename>")
   print("   py dat_cli.py --rename-level <level-id-or-index> <new-level-name> <original-save-filename> <new-save-filename>")
   print("   py dat_cli.py --resave-only <original-save-filename> <new-save-filename>")
   print()

if __name__ == '__main__':

   if len(sys.argv) == 1 or (len(sys.argv) == 2 and sys.argv[1] in ("-h", "--help")):
      printUsage()

   elif len(sys.argv) == 3 and sys.argv[1] == "--info" and os.path.isfile(sys.argv[2]):
      datFilename = sys.argv[2]

      try:
         data = dat_parse.readSaveFile(datFilename)
         obfuscatedFlag = dat_parse.isObfuscatedContainer(data)
         xml = dat_parse.loadSaveBytes(data)
         levels = dat_parse.parseXmlToLevelList(xml)
         print(f"Container: {'obfuscated' if obfuscatedFlag else 'plain XML'}")
         print(f"Container Size: {len(data)} bytes")
         print(f"XML Size: {len(xml)} characters")
         print(f"Levels: {len(levels)}")
         extraKeyCounts: dict[str, int] = {}
         for level in levels:
            for (key, value, xmlType) in level.extra:
               extraKeyCounts[key] = extraKeyCounts.get(key, 0) + 1
         if len(extraKeyCounts) > 0:
            print("Additional Keys:")
            for key in sorted(extraKeyCounts):
               print(f"   {key}: {extraKeyCounts[key]}")

      except Exception as error:
         raise Exception(f"ERROR: While processing '{datFilename}': {error}")

   elif len(sys.argv) == 3 and sys.argv[1] == "--list-levels" and os.path.isfile(sys.argv[2]):
      datFilename = sys.argv[2]

      try:
         levels = dat_parse.readFullSaveFile(datFilename)
         for (idx, level) in enumerate(levels):
            print(f"{idx}: id={level.levelId} name='{level.levelName}' creator='{level.creator}' attempts={level.attempts}")
            try:
               description = level.getDescription()
            except dat_parse.ParseError as error:
               print(f"WARNING: Unable to decode description of level {idx}: {error}", file=sys.stderr)
               description = None
            if description is not None and len(description) > 0:
               print(f"   {description}")
      except Exception as error:
         raise Exception(f"ERROR: While processing '{datFilename}': {error}")

   elif len(sys.argv) == 4 and sys.argv[1] == "--to-xml" and os.path.isfile(sys.argv[2]):
      datFilename = sys.argv[2]
      outFilename = sys.argv[3]

      try:
         xml = dat_parse.loadSaveBytes(dat_parse.readSaveFile(datFilename))
         print(f"Writing {outFilename}")
         with open(outFilename, "w", encoding="utf-8", newline="") as fout:
            fout.write(xml)
      except Exception as error:
         raise Exception(f"ERROR: While processing '{datFilename}': {error}")

   elif len(sys.argv) == 4 and sys.argv[1] == "--from-xml" and os.path.isfile(sys.argv[2]):
      xmlFilename = sys.argv[2]
      outFilename = sys.argv[3]

      with open(xmlFilename, "r", encoding="utf-8", newline="") as fin:
         xml = fin.read()
      print(f"Writing {outFilename}")
      with open(outFilename, "wb") as fout:
         fout.write(dat_to_resave.encodeSaveText(xml))

   elif len(sys.argv) == 4 and sys.argv[1] == "--to-json" and os.path.isfile(sys.argv[2]):
      datFilename = sys.argv[2]
      outFilename = sys.argv[3]

      try:
         levels = dat_parse.readFullSaveFile(datFilename)
         print(f"Writing {outFilename}")
         with open(outFilename, "w", encoding="utf-8") as fout:
            json.dump({"levels": toJSON(levels)}, fout, indent=2)
      except Exception as error:
         raise Exception(f"ERROR: While processing '{datFilename}': {error}")

   elif len(sys.argv) == 4 and sys.argv[1] == "--from-json" and os.path.isfile(sys.argv[2]):
      jsonFilename = sys.argv[2]
      outFilename = sys.argv[3]

      print("Reading JSON")
      with open(jsonFilename, "r", encoding="utf-8") as fin:
         jdata = json.load(fin)

      print("Parsing JSON")
      levels = fromJSON(jdata["levels"])
      writeSaveFile(levels, outFilename)

   elif len(sys.argv) == 4 and sys.argv[1] == "--to-tree-json" and os.path.isfile(sys.argv[2]):
      datFilename = sys.argv[2]
      outFilename = sys.argv[3]

      try:
         tree = dat_tree.buildTreeFromXml(dat_parse.loadSaveBytes(dat_parse.readSaveFile(datFilename)))
         print(f"Writing {outFilename}")
         with open(outFilename, "w", encoding="utf-8") as fout:
            json.dump(tree.toDict(), fout, indent=2)
      except Exception as error:
         raise Exception(f"ERROR: While processing '{datFilename}': {error}")

   elif len(sys.argv) == 6 and sys.argv[1] == "--rename-level" and os.path.isfile(sys.argv[4]):
      levelIdOrIndex = sys.argv[2]
      newLevelName = sys.argv[3]
      datFilename = sys.argv[4]
      outFilename = sys.argv[5]

      try:
         levels = dat_parse.readFullSaveFile(datFilename)
         level = findLevel(levels, levelIdOrIndex)
         if level is None:
            print(f"ERROR: Unable to find level '{levelIdOrIndex}'", file=sys.stderr)
            exit(1)
         print(f"Renaming '{level.levelName}' to '{newLevelName}'")
         level.levelName = newLevelName
         writeSaveFile(levels, outFilename)
      except Exception as error:
         raise Exception(f"ERROR: While processing '{datFilename}': {error}")

   elif len(sys.argv) == 4 and sys.argv[1] == "--resave-only" and os.path.isfile(sys.argv[2]):
      datFilename = sys.argv[2]
      outFilename = sys.argv[3]

      try:
         levels = dat_parse.readFullSaveFile(datFilename)
         writeSaveFile(levels, outFilename)
      except Exception as error:
         raise Exception(f"ERROR: While processing '{datFilename}': {error}")

   else:
      print("ERROR: Unrecognized command line.", file=sys.stderr)
      printUsage()
      exit(1)

   exit(0)
