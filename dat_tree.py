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

# Generic representation of save XML for data that isn't a level list (e.g. CCGameManager.dat).
# Nodes live in one list and refer to each other by index only.

from dat_data.data import KEY_TAG, VALUE_TAGS, BOOLEAN_TAGS, CONTAINER_TAGS, ARRAY_MARKER_KEY
import dat_parse

class TreeNode:
   def __init__(self, name: str, value: dat_parse.TypedValue | None = None, parent: int | None = None):
      self.name = name
      self.value = value
      self.children: dict[str, int] = {}
      self.parent = parent

   def __str__(self):
      return f"<TreeNode: name={self.name}, value={self.value}, children={self.children}, parent={self.parent}>"

class DataTree:
   """Tree of named nodes addressed by index.

   New children attach under the selected node, or at the root level when
   nothing is selected.  Sibling names are unique, a second child with the
   same name replaces the first in its parent's mapping.
   """

   def __init__(self):
      self.nodes: list[TreeNode] = []
      self.rootChildren: dict[str, int] = {}
      self.selection: int | None = None

   def __len__(self):
      return len(self.nodes)

   def addChild(self, name: str, value: dat_parse.TypedValue | None = None) -> int:
      index = len(self.nodes)
      self.nodes.append(TreeNode(name, value, self.selection))
      if self.selection is None:
         self.rootChildren[name] = index
      else:
         self.nodes[self.selection].children[name] = index
      return index

   def addChildAndSelect(self, name: str, value: dat_parse.TypedValue | None = None) -> int:
      self.selection = self.addChild(name, value)
      return self.selection

   def select(self, index: int) -> bool:
      if not isinstance(index, int) or index < 0 or index >= len(self.nodes):
         return False
      self.selection = index
      return True

   def deselect(self) -> None:
      self.selection = None

   def selectParent(self) -> bool:
      if self.selection is None:
         return False
      self.selection = self.nodes[self.selection].parent
      return True

   def currentSelection(self) -> int | None:
      return self.selection

   def getNode(self, index: int) -> TreeNode | None:
      if not isinstance(index, int) or index < 0 or index >= len(self.nodes):
         return None
      return self.nodes[index]

   def getChildren(self, index: int | None = None) -> dict[str, int]:
      if index is None:
         return self.rootChildren
      return self.nodes[index].children

   def getChild(self, name: str, index: int | None = None) -> TreeNode | None:
      childIndex = self.getChildren(index).get(name)
      if childIndex is None:
         return None
      return self.nodes[childIndex]

   def toDict(self, index: int | None = None) -> dict:
      data = {}
      for (name, childIndex) in self.getChildren(index).items():
         child = self.nodes[childIndex]
         if child.value is not None and child.value.valueType == dat_parse.ValueType.INT_ARRAY:
            data[name] = child.value.value
         elif len(child.children) > 0 or child.value is None:
            data[name] = self.toDict(childIndex)
         else:
            data[name] = child.value.value
      return data

def markIntArray(tree: DataTree, index: int) -> None:
   node = tree.nodes[index]
   marker = tree.getChild(ARRAY_MARKER_KEY, index)
   if marker is None or marker.value is None or marker.value.getBoolean() is not True:
      return
   elements = []
   for (name, childIndex) in node.children.items():
      if name == ARRAY_MARKER_KEY:
         continue
      element = tree.nodes[childIndex].value
      if element is None or element.valueType != dat_parse.ValueType.INTEGER:
         return
      elements.append(element.value)
   node.value = dat_parse.TypedValue(dat_parse.ValueType.INT_ARRAY, elements)

def buildTreeFromXml(xml: str) -> DataTree:
   tree = DataTree()
   containerSelected: list[bool] = []
   pendingKey = None
   keyText = None
   valueTag = None
   valueText = ""
   inKey = False

   for (event, data) in dat_parse.iterXmlEvents(xml):
      if event == "start":
         if data == KEY_TAG:
            inKey = True
            keyText = ""
         elif data in CONTAINER_TAGS:
            # The outermost <dict> has no key and maps onto the root level.
            if pendingKey is not None:
               tree.addChildAndSelect(pendingKey)
               containerSelected.append(True)
            else:
               containerSelected.append(False)
            pendingKey = None
         elif data in BOOLEAN_TAGS:
            if pendingKey is not None:
               tree.addChild(pendingKey, dat_parse.convertValue(data, ""))
            pendingKey = None
         elif data in VALUE_TAGS or pendingKey is not None:
            valueTag = data
            valueText = ""

      elif event == "text":
         if inKey:
            keyText = data
         elif valueTag is not None:
            valueText = data

      elif event == "end":
         if data == KEY_TAG and inKey:
            pendingKey = keyText
            inKey = False
         elif data in CONTAINER_TAGS:
            if containerSelected.pop():
               markIntArray(tree, tree.currentSelection())
               tree.selectParent()
         elif valueTag is not None and data == valueTag:
            if pendingKey is not None:
               tree.addChild(pendingKey, dat_parse.convertValue(valueTag, valueText))
            pendingKey = None
            valueTag = None

   return tree
