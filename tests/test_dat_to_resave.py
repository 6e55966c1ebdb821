import pytest

import dat_parse
import dat_to_resave
from dat_parse import Level

HEADER = '<?xml version="1.0" encoding="utf-8"?><plist version="1.0" gjver="2.0"><dict><k>LLM_01</k><d><k>_isArr</k><t />'
FOOTER = '</d><k>LLM_02</k><i>35</i></dict></plist>'

def makeLevel(**fields) -> Level:
   level = Level()
   for (attribute, value) in fields.items():
      setattr(level, attribute, value)
   return level

def fullLevel(idx: int) -> Level:
   return makeLevel(
      levelId=str(idx),
      levelName=f"Level {idx}",
      descriptionB64="TXkgbGV2ZWw=",
      levelString="H4sIAAAAAAAAC6WQwQ3DIAxFF" * 10,
      creator="Creator",
      userId="12345",
      songId="4",
      attempts="77",
      normalMode="t",
      practiceMode="f",
      original="0",
      twoPlayer="t")

def test_write_empty_list():
   assert dat_to_resave.xmlFromLevelList([]) == HEADER + FOOTER

def test_write_single_level():
   level = makeLevel(levelId="1", levelName="A", normalMode="t")
   expected = HEADER + "<k>k_0</k><d><k>k1</k><i>1</i><k>k2</k><s>A</s><k>k19</k><t /></d>" + FOOTER
   assert dat_to_resave.xmlFromLevelList([level]) == expected

def test_write_known_fields_in_canonical_order():
   level = makeLevel(twoPlayer="f", attempts="3", levelId="9")
   level.extra.append(("k50", "35", "i"))
   xml = dat_to_resave.xmlFromLevelList([level])
   assert "<d><k>k1</k><i>9</i><k>k18</k><i>3</i><k>k43</k><f /><k>k50</k><i>35</i></d>" in xml

def test_write_boolean_quirk():
   level = makeLevel(normalMode="true", practiceMode="t")
   level.extra.append(("k77", "yes", "bool"))
   xml = dat_to_resave.xmlFromLevelList([level])
   # Only the exact "t" token is written as true.
   assert "<k>k19</k><f />" in xml
   assert "<k>k20</k><t />" in xml
   assert "<k>k77</k><f />" in xml
   assert dat_parse.parseXmlToLevelList(xml)[0].normalMode == "f"

def test_write_skips_unsupported_array_key():
   level = makeLevel(levelId="1")
   level.extra.append(("kI6", "5", "s"))
   level.extra.append(("k99", "x", "s"))
   xml = dat_to_resave.xmlFromLevelList([level])
   assert "kI6" not in xml
   assert "<k>k99</k><s>x</s>" in xml

def test_write_escapes_text():
   level = makeLevel(levelName="a & <b>", creator="line\r\nbreak")
   xml = dat_to_resave.xmlFromLevelList([level])
   assert "<s>a &amp; &lt;b&gt;</s>" in xml
   levels = dat_parse.parseXmlToLevelList(xml)
   assert levels[0].levelName == "a & <b>"
   assert levels[0].creator == "line\r\nbreak"

def test_round_trip_known_fields():
   levels = [fullLevel(0), fullLevel(1), makeLevel(levelId="2")]
   assert dat_parse.parseXmlToLevelList(dat_to_resave.xmlFromLevelList(levels)) == levels

def test_round_trip_empty_and_blank_strings():
   levels = [makeLevel(levelId="1", levelName=""), makeLevel(levelId="2", creator="  ", descriptionB64="")]
   xml = dat_to_resave.xmlFromLevelList(levels)
   assert "<k>k2</k><s></s>" in xml
   assert dat_parse.parseXmlToLevelList(xml) == levels
   assert dat_parse.parseXmlToLevelList(xml, strict=True) == levels

def test_round_trip_unknown_keys():
   xml = HEADER + "<k>k_0</k><d><k>k1</k><i>5</i><k>k99</k><r>1.5</r><k>k77</k><t /><k>k45</k><s>text</s></d>" + FOOTER
   levels = dat_parse.parseXmlToLevelList(xml)
   rewritten = dat_to_resave.xmlFromLevelList(levels)
   assert rewritten == xml
   assert dat_parse.parseXmlToLevelList(rewritten) == levels

def test_round_trip_drops_unsupported_array():
   xml = HEADER + "<k>k_0</k><d><k>k1</k><i>1</i><k>kI6</k><d><k>0</k><s>5</s></d></d>" + FOOTER
   levels = dat_parse.parseXmlToLevelList(xml)
   assert levels[0].extra == [("kI6", "5", "s")]
   reparsed = dat_parse.parseXmlToLevelList(dat_to_resave.xmlFromLevelList(levels))
   assert reparsed[0].extra == []
   assert reparsed[0].levelId == "1"

@pytest.mark.parametrize("text", ["hello", "", HEADER + FOOTER, "é中" * 1000])
def test_encode_then_decode(text):
   data = dat_to_resave.encodeSaveText(text)
   assert dat_parse.isObfuscatedContainer(data)
   assert dat_parse.decodeSaveBytes(data) == text
   assert dat_parse.loadSaveBytes(data) == text

def test_save_file(tmp_path):
   levels = [fullLevel(0), makeLevel(levelId="1", levelName="Second")]
   path = tmp_path / "CCLocalLevels.dat"
   dat_to_resave.saveFile(levels, str(path))
   assert dat_parse.readFullSaveFile(str(path)) == levels
