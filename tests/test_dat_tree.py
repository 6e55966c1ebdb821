import pytest

import dat_tree
from dat_parse import MarkupSyntaxError, TypedValue, UnknownTypeTag, ValueConversionError, ValueType

GAME_MANAGER_XML = (
   '<?xml version="1.0"?><plist version="1.0" gjver="2.0"><dict>'
   '<k>playerName</k><s>RobTop</s>'
   '<k>bgVolume</k><r>0.5</r>'
   '<k>valueKeeper</k><d><k>gv_0001</k><s>1</s><k>gv_0002</k><i>0</i></d>'
   '<k>hasRP</k><t />'
   '<k>showSongMarkers</k><f />'
   '<k>stats</k><d><k>_isArr</k><t /><k>k_0</k><i>3</i><k>k_1</k><i>-4</i></d>'
   '</dict></plist>'
)

def test_add_child_at_root():
   tree = dat_tree.DataTree()
   index = tree.addChild("a", TypedValue(ValueType.INTEGER, 1))
   assert index == 0
   assert tree.rootChildren == {"a": 0}
   assert tree.currentSelection() is None
   assert tree.getChild("a").value.getInteger() == 1

def test_add_child_and_select():
   tree = dat_tree.DataTree()
   parent = tree.addChildAndSelect("parent")
   assert tree.currentSelection() == parent
   child = tree.addChild("child")
   assert tree.currentSelection() == parent
   assert tree.getChildren(parent) == {"child": child}
   assert tree.getNode(child).parent == parent
   assert tree.getChild("child") is None
   assert tree.getChild("child", parent) is tree.getNode(child)

def test_select_invalid_index_is_noop():
   tree = dat_tree.DataTree()
   first = tree.addChild("first")
   assert tree.select(first)
   assert not tree.select(5)
   assert not tree.select(-1)
   assert tree.currentSelection() == first
   assert tree.getNode(5) is None

def test_select_parent():
   tree = dat_tree.DataTree()
   assert not tree.selectParent()
   assert tree.currentSelection() is None
   outer = tree.addChildAndSelect("outer")
   inner = tree.addChildAndSelect("inner")
   assert tree.currentSelection() == inner
   assert tree.selectParent()
   assert tree.currentSelection() == outer
   assert tree.selectParent()
   assert tree.currentSelection() is None
   assert not tree.selectParent()

def test_deselect_attaches_at_root():
   tree = dat_tree.DataTree()
   tree.addChildAndSelect("outer")
   tree.deselect()
   second = tree.addChild("second")
   assert tree.currentSelection() is None
   assert tree.rootChildren["second"] == second
   assert tree.getNode(second).parent is None

def test_duplicate_name_last_write_wins():
   tree = dat_tree.DataTree()
   tree.addChild("a", TypedValue(ValueType.STRING, "old"))
   newer = tree.addChild("a", TypedValue(ValueType.STRING, "new"))
   assert tree.rootChildren == {"a": newer}
   assert tree.getChild("a").value.getString() == "new"
   assert len(tree) == 2

def test_build_tree_from_xml():
   tree = dat_tree.buildTreeFromXml(GAME_MANAGER_XML)
   assert tree.currentSelection() is None
   assert set(tree.rootChildren) == {"playerName", "bgVolume", "valueKeeper", "hasRP", "showSongMarkers", "stats"}
   assert tree.getChild("playerName").value == TypedValue(ValueType.STRING, "RobTop")
   assert tree.getChild("bgVolume").value.getFloat() == 0.5
   assert tree.getChild("hasRP").value.getBoolean() is True
   assert tree.getChild("showSongMarkers").value.getBoolean() is False
   valueKeeper = tree.rootChildren["valueKeeper"]
   assert tree.getNode(valueKeeper).value is None
   assert tree.getChild("gv_0001", valueKeeper).value.getString() == "1"
   assert tree.getChild("gv_0002", valueKeeper).value.getInteger() == 0
   assert tree.getChild("stats").value.getIntArray() == [3, -4]

def test_tree_to_dict():
   tree = dat_tree.buildTreeFromXml(GAME_MANAGER_XML)
   assert tree.toDict() == {
      "playerName": "RobTop",
      "bgVolume": 0.5,
      "valueKeeper": {"gv_0001": "1", "gv_0002": 0},
      "hasRP": True,
      "showSongMarkers": False,
      "stats": [3, -4],
   }

def test_build_tree_array_with_strings_is_not_int_array():
   tree = dat_tree.buildTreeFromXml("<plist><dict><k>names</k><d><k>_isArr</k><t /><k>k_0</k><s>a</s></d></dict></plist>")
   names = tree.getChild("names")
   assert names.value is None
   assert len(names.children) == 2

def test_build_tree_level_list():
   xml = '<plist><dict><k>LLM_01</k><d><k>_isArr</k><t /><k>k_0</k><d><k>k1</k><i>42</i><k>k2</k><s>Name</s></d></d></dict></plist>'
   tree = dat_tree.buildTreeFromXml(xml)
   levelList = tree.rootChildren["LLM_01"]
   level = tree.getChildren(levelList)["k_0"]
   assert tree.getChild("k1", level).value.getInteger() == 42
   assert tree.getChild("k2", level).value.getString() == "Name"
   assert tree.getNode(levelList).value is None

def test_build_tree_unknown_tag():
   with pytest.raises(UnknownTypeTag) as excinfo:
      dat_tree.buildTreeFromXml("<plist><dict><k>x</k><z>1</z></dict></plist>")
   assert excinfo.value.tag == "z"

def test_build_tree_bad_integer():
   with pytest.raises(ValueConversionError):
      dat_tree.buildTreeFromXml("<plist><dict><k>x</k><i>abc</i></dict></plist>")

def test_build_tree_malformed():
   with pytest.raises(MarkupSyntaxError):
      dat_tree.buildTreeFromXml("<plist><dict><k>x</k>")
