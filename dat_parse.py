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

# Container layers, outermost first: XOR 0x0B, URL-safe base64, gzip, plist-like XML.
# The macOS container (AES instead of XOR) is not supported.

import base64
import binascii
import enum
import math
import os
import re
import struct
import sys
import zlib
import xml.etree.ElementTree as ET
from dat_data.data import XOR_SAVE_KEY, GZIP_BASE64_MAGIC, LEVEL_DATA_DEPTH, LEVEL_END_DEPTH, KEY_TAG, VALUE_TAGS, BOOLEAN_TAGS, CONTAINER_TAGS, BOOLEAN_XML_TYPE
import dat_data.data

PRINT_DEBUG = False
MARKUP_CHUNK_SIZE = 64 * 1024
XML_WHITESPACE = " \t\r\n"

INT32_MIN = -2**31
INT32_MAX = 2**31 - 1
INTEGER_PATTERN = re.compile(r"[+-]?[0-9]+")

class ParseError(Exception):
    pass

class DecodeError(ParseError):
   stage = None

class InvalidText(DecodeError):
   stage = "text"

class InvalidBase64(DecodeError):
   stage = "base64"

class InvalidCompressedStream(DecodeError):
   stage = "gzip"

class MarkupSyntaxError(ParseError):
   pass

class RecordStructureError(ParseError):
   pass

class UnknownTypeTag(ParseError):
   def __init__(self, tag: str):
      super().__init__(f"Unknown value type tag '{tag}'")
      self.tag = tag

class ValueConversionError(ParseError):
   def __init__(self, tag: str, rawText):
      super().__init__(f"Unable to convert '{rawText}' to the type of tag '{tag}'")
      self.tag = tag
      self.rawText = rawText

XOR_TABLE = bytes(idx ^ XOR_SAVE_KEY for idx in range(256))

def xorBytes(data: bytes) -> bytes:
   return bytes(data).translate(XOR_TABLE)

def decodeBase64NoPad(text: str) -> bytes:
   if len(text) % 4 == 1:
      raise InvalidBase64(f"Base64 text of length {len(text)} can not be decoded.")
   if "+" in text or "/" in text:
      raise InvalidBase64("Base64 text uses the standard alphabet instead of the URL-safe alphabet.")
   try:
      return base64.b64decode(text + "=" * (-len(text) % 4), altchars=b"-_", validate=True)
   except (binascii.Error, ValueError) as error:
      raise InvalidBase64(f"Base64 decode failure: {error}") from error

def gunzipText(data: bytes) -> str:
   decompressor = zlib.decompressobj(wbits=16 + zlib.MAX_WBITS)
   try:
      raw = decompressor.decompress(data) + decompressor.flush()
   except zlib.error as error:
      raise InvalidCompressedStream(f"Gzip decompression failure: {error}") from error
   if not decompressor.eof:
      raise InvalidCompressedStream(f"Gzip stream truncated after {len(data)} bytes.")
   try:
      return raw.decode("utf-8")
   except UnicodeDecodeError as error:
      raise InvalidCompressedStream(f"Decompressed save is not UTF-8: {error}") from error

def decodeSaveBytes(data: bytes) -> str:
   xoredBytes = xorBytes(data)
   try:
      base64String = xoredBytes.decode("utf-8")
   except UnicodeDecodeError as error:
      raise InvalidText(f"Save is not text after XOR with {hex(XOR_SAVE_KEY)}: {error}") from error
   # Both NULs and padding show up inconsistently depending on where the save was written.
   base64String = base64String.replace("\0", "").replace("=", "")
   return gunzipText(decodeBase64NoPad(base64String))

def isObfuscatedContainer(data: bytes) -> bool:
   return xorBytes(data[:len(GZIP_BASE64_MAGIC)]) == GZIP_BASE64_MAGIC

def loadSaveBytes(data: bytes) -> str:
   """Returns the save's XML, decoding the container only when needed.

   Data that is valid UTF-8 and does not start with the obfuscated gzip
   signature (GZIP_BASE64_MAGIC once XORed, "C?xB" as text) is returned as
   is.  Anything else goes through decodeSaveBytes, including plain text
   that happens to start with "C?xB".
   """
   # XORed base64 is plain ASCII, so UTF-8 validity alone can't tell a container from a document.
   if not isObfuscatedContainer(data):
      try:
         return bytes(data).decode("utf-8")
      except UnicodeDecodeError:
         pass
   return decodeSaveBytes(data)

class ValueType(enum.Enum):
   INTEGER = "i"
   FLOAT = "r"
   STRING = "s"
   BOOLEAN = BOOLEAN_XML_TYPE
   INT_ARRAY = "d"

class TypedValue:
   def __init__(self, valueType: ValueType, value):
      self.valueType = valueType
      self.value = value

   def getInteger(self) -> int | None:
      return self.value if self.valueType == ValueType.INTEGER else None

   def getFloat(self) -> float | None:
      return self.value if self.valueType == ValueType.FLOAT else None

   def getString(self) -> str | None:
      return self.value if self.valueType == ValueType.STRING else None

   def getBoolean(self) -> bool | None:
      return self.value if self.valueType == ValueType.BOOLEAN else None

   def getIntArray(self) -> list[int] | None:
      return self.value if self.valueType == ValueType.INT_ARRAY else None

   def __eq__(self, other):
      if not isinstance(other, TypedValue):
         return NotImplemented
      return self.valueType == other.valueType and self.value == other.value

   def __repr__(self):
      return f"<TypedValue: {self.valueType.name} {self.value!r}>"

def toInt32(tag: str, rawText) -> int:
   if not isinstance(rawText, str) or INTEGER_PATTERN.fullmatch(rawText) is None:
      raise ValueConversionError(tag, rawText)
   value = int(rawText)
   if value < INT32_MIN or value > INT32_MAX:
      raise ValueConversionError(tag, rawText)
   return value

def toFloat32(tag: str, rawText) -> float:
   if not isinstance(rawText, str) or rawText != rawText.strip() or "_" in rawText:
      raise ValueConversionError(tag, rawText)
   try:
      value = float(rawText)
   except ValueError as error:
      raise ValueConversionError(tag, rawText) from error
   try:
      return struct.unpack("<f", struct.pack("<f", value))[0]
   except OverflowError:
      return math.copysign(math.inf, value)

def convertValue(xmlType: str, rawText) -> TypedValue:
   match xmlType:
      case "i":
         return TypedValue(ValueType.INTEGER, toInt32(xmlType, rawText))
      case "r":
         return TypedValue(ValueType.FLOAT, toFloat32(xmlType, rawText))
      case "s":
         return TypedValue(ValueType.STRING, rawText)
      case "t":
         return TypedValue(ValueType.BOOLEAN, True)
      case "f":
         return TypedValue(ValueType.BOOLEAN, False)
      case "d":
         if isinstance(rawText, str):
            raise ValueConversionError(xmlType, rawText)
         return TypedValue(ValueType.INT_ARRAY, [toInt32(xmlType, element) for element in rawText])
      case _:
         raise UnknownTypeTag(xmlType)

class Level:
   """A level as extracted from the XML, no processing done on the values.

   Only the commonly used keys get their own attribute.  Every other key
   lands in extra as a (key, value, xmlType) tuple so it can be written back.
   Booleans are stored as "t" or "f".
   """

   def __init__(self):
      self.levelId = None        # k1
      self.levelName = None      # k2
      self.descriptionB64 = None # k3
      self.levelString = None    # k4
      self.creator = None        # k5
      self.userId = None         # k6
      self.songId = None         # k8, None when the song is custom
      self.attempts = None       # k18
      self.normalMode = None     # k19
      self.practiceMode = None   # k20
      self.original = None       # k42
      self.twoPlayer = None      # k43
      self.extra: list[tuple[str, str, str]] = []

   def keyValue(self, key: str, value: str, xmlType: str) -> None:
      attribute = dat_data.data.LEVEL_KEY_TO_ATTRIBUTE.get(key)
      if attribute is None:
         self.extra.append((key, value, xmlType))
      else:
         setattr(self, attribute, value)

   def getDescription(self) -> str | None:
      if self.descriptionB64 is None:
         return None
      return decodeBase64NoPad(self.descriptionB64.replace("=", "")).decode("utf-8", errors="replace")

   def __eq__(self, other):
      if not isinstance(other, Level):
         return NotImplemented
      for (key, attribute, xmlType) in dat_data.data.LEVEL_KEYS:
         if getattr(self, attribute) != getattr(other, attribute):
            return False
      return self.extra == other.extra

   def __str__(self):
      levelStringLength = None if self.levelString is None else len(self.levelString)
      return f"<Level: levelId={self.levelId}, levelName={self.levelName}, descriptionB64={self.descriptionB64}, levelString.len={levelStringLength}, creator={self.creator}, userId={self.userId}, songId={self.songId}, attempts={self.attempts}, normalMode={self.normalMode}, practiceMode={self.practiceMode}, original={self.original}, twoPlayer={self.twoPlayer}, extra={self.extra}>"

def hasText(text) -> bool:
   return text is not None and len(text.strip(XML_WHITESPACE)) > 0

def pullEvents(events, openElements: list):
   for (event, element) in events:
      if event == "start":
         # The parent's text is complete once a child starts.
         if len(openElements) > 0 and not openElements[-1][1]:
            openElements[-1][1] = True
            if hasText(openElements[-1][0].text):
               yield ("text", openElements[-1][0].text)
         openElements.append([element, False])
         yield ("start", element.tag)
      else:
         (element, textEmitted) = openElements.pop()
         # A leaf always reports its text, so <s></s> and <s>  </s> still carry a value.
         if not textEmitted:
            yield ("text", element.text or "")
         yield ("end", element.tag)
         element.clear()

def iterXmlEvents(xml: str, chunkSize: int = MARKUP_CHUNK_SIZE):
   """Yields ("start", tag), ("text", data) and ("end", tag) in document order.

   Every element without children reports its text, possibly empty.  In an
   element with children, whitespace-only text produces no event.  Text
   following a closed element (an element tail) never carries a key or a
   value in this dialect and is not reported.
   """
   parser = ET.XMLPullParser(events=("start", "end"))
   openElements = []
   try:
      for offset in range(0, len(xml), chunkSize):
         parser.feed(xml[offset:offset+chunkSize])
         yield from pullEvents(parser.read_events(), openElements)
      parser.close()
   except ET.ParseError as error:
      raise MarkupSyntaxError(f"Malformed save XML: {error}") from error
   yield from pullEvents(parser.read_events(), openElements)

class ParseState(enum.Enum):
   BEGIN = enum.auto()
   IN_KEY = enum.auto()
   OUT_KEY = enum.auto()
   IN_VALUE = enum.auto()
   SEEKING_KEY = enum.auto()
   PARSED_LEVEL = enum.auto()

def parseXmlToLevelList(xml: str, strict: bool = False) -> list[Level]:
   """Extracts the levels from the XML in a single pass without building a tree.

   Levels are segmented purely by depth.  A document that isn't shaped like
   the game's level list yields missing or merged levels rather than an
   error, unless strict is set.
   """
   levels: list[Level] = []
   currentLevel = Level()
   currentDepth = 0
   currentKey = ""
   valueTag = None
   state = ParseState.BEGIN

   for (event, data) in iterXmlEvents(xml):
      if event == "start":
         currentDepth += 1
         if PRINT_DEBUG:
            print(f"state: {state.name}, name: {data}, depth: {currentDepth}", file=sys.stderr)

         if data == KEY_TAG and currentDepth == LEVEL_DATA_DEPTH:
            state = ParseState.IN_KEY
            continue
         # Booleans are empty elements, so the tag is the whole value.
         if state == ParseState.OUT_KEY:
            if data in BOOLEAN_TAGS:
               currentLevel.keyValue(currentKey, data, BOOLEAN_XML_TYPE)
               state = ParseState.SEEKING_KEY
            elif data in VALUE_TAGS:
               valueTag = data
               state = ParseState.IN_VALUE

      elif event == "end":
         currentDepth -= 1
         if PRINT_DEBUG:
            print(f"state: {state.name}, name: {data}, depth: {currentDepth}", file=sys.stderr)

         if currentDepth == LEVEL_END_DEPTH:
            if state not in (ParseState.BEGIN, ParseState.PARSED_LEVEL):
               if strict and state in (ParseState.IN_KEY, ParseState.OUT_KEY, ParseState.IN_VALUE):
                  raise RecordStructureError(f"Level {len(levels)} ended while key '{currentKey}' was waiting for its value.")
               if PRINT_DEBUG:
                  print(f"Adding level: {currentLevel}", file=sys.stderr)
               levels.append(currentLevel)
               currentLevel = Level()
               state = ParseState.PARSED_LEVEL
            elif strict and data in CONTAINER_TAGS:
               raise RecordStructureError(f"Level {len(levels)} has no fields and would be dropped.")
         if data == KEY_TAG and state == ParseState.IN_KEY:
            state = ParseState.OUT_KEY

      elif event == "text":
         if PRINT_DEBUG:
            print(f"state: {state.name}, data: {data[:100]}", file=sys.stderr)
         if state == ParseState.IN_KEY:
            currentKey = data
         elif state == ParseState.IN_VALUE:
            if PRINT_DEBUG:
               print(f"key: {currentKey}, valuelen: {len(data)}", file=sys.stderr)
            currentLevel.keyValue(currentKey, data, valueTag)
            state = ParseState.SEEKING_KEY

   return levels

def readSaveFile(filename: str) -> bytes:
   with open(filename, "rb") as fin:
      return fin.read()

def readFullSaveFile(filename: str, strict: bool = False) -> list[Level]:
   return parseXmlToLevelList(loadSaveBytes(readSaveFile(filename)), strict)

if __name__ == '__main__':

   if (len(sys.argv) <= 1 or len(sys.argv[1]) == 0) and "LOCALAPPDATA" in os.environ and os.path.isfile(f"{os.environ['LOCALAPPDATA']}\\GeometryDash\\CCLocalLevels.dat"):
      datFilename = f"{os.environ['LOCALAPPDATA']}\\GeometryDash\\CCLocalLevels.dat"
   elif len(sys.argv) <= 1:
      print("ERROR: Please supply save file path/name to perform parsing.", file=sys.stderr)
      exit(1)
   else:
      datFilename = sys.argv[1]

   if len(sys.argv) >= 3:
      outBase = sys.argv[2]
   elif len(datFilename) >= 5:
      outBase = datFilename[:-4]
   else:
      outBase = datFilename
   dumpOutputFilename = outBase + "-dump.txt"
   decodedOutputFilename = outBase + "-decoded.xml"

   if not os.path.isfile(datFilename):
      print(f"ERROR: Save file does not exist: '{datFilename}'", file=sys.stderr)
      exit(1)

   print(f"Parsing {datFilename}")
   try:
      xml = loadSaveBytes(readSaveFile(datFilename))
      with open(decodedOutputFilename, "w", encoding="utf-8") as xmlOut:
         xmlOut.write(xml)
      levels = parseXmlToLevelList(xml)
      with open(dumpOutputFilename, "w", encoding="utf-8") as dumpOut:
         dumpOut.write(f"Levels: {len(levels)}\n")
         for level in levels:
            dumpOut.write(f"  {level}\n")
   except Exception as error:
      raise Exception(f"ERROR: While processing '{datFilename}': {error}")

   exit(0)
