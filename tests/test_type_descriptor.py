"""Unit tests for docbind.pojo.type_descriptor module."""

import pytest
from typing import Annotated, Any, ClassVar, Dict, Generic, List, Optional, Set, Tuple, TypeVar, Union

from docbind.exceptions import DefinitionException
from docbind.pojo.markers import Id, Property
from docbind.pojo.type_descriptor import (
    OBJECT,
    TypeDescriptor,
    TypeParameterMap,
    annotation_markers,
    base_type_var_substitutions,
    class_type_parameters,
    is_class_var,
    strip_annotation,
)

T = TypeVar("T")
K = TypeVar("K")
Bounded = TypeVar("Bounded", bound=str)


class Pair(Generic[K, T]):
    pass


class StringPair(Pair[str, T]):
    pass


class IntStringPair(StringPair[int]):
    pass


class TestTypeDescriptorOf:
    """Tests for TypeDescriptor.of."""

    def test_plain_class(self):
        assert TypeDescriptor.of(int) == TypeDescriptor(int)

    def test_generic_list(self):
        assert TypeDescriptor.of(List[str]) == TypeDescriptor(list, (TypeDescriptor(str),))

    def test_builtin_generic(self):
        assert TypeDescriptor.of(dict[str, int]) == TypeDescriptor(dict, (TypeDescriptor(str), TypeDescriptor(int)))

    def test_optional_is_stripped(self):
        assert TypeDescriptor.of(Optional[Dict[str, int]]).raw_type is dict

    def test_pipe_optional_is_stripped(self):
        assert TypeDescriptor.of(int | None) == TypeDescriptor(int)

    def test_annotated_is_stripped(self):
        assert TypeDescriptor.of(Annotated[str, Property("n")]) == TypeDescriptor(str)

    def test_variadic_tuple(self):
        assert TypeDescriptor.of(Tuple[int, ...]) == TypeDescriptor(tuple, (TypeDescriptor(int),))

    def test_union_is_object(self):
        assert TypeDescriptor.of(Union[int, str]) == OBJECT

    def test_any_is_object(self):
        assert TypeDescriptor.of(Any) == OBJECT

    def test_type_var(self):
        assert TypeDescriptor.of(T) == OBJECT
        assert TypeDescriptor.of(Bounded) == TypeDescriptor(str)

    def test_forward_reference(self):
        with pytest.raises(DefinitionException):
            TypeDescriptor.of("Missing")

    def test_hashable(self):
        assert len({TypeDescriptor.of(List[int]), TypeDescriptor.of(List[int])}) == 1

    def test_type_name(self):
        assert str(TypeDescriptor.of(Dict[str, List[int]])) == "dict[str, list[int]]"


class TestIsAssignableFrom:
    """Tests for TypeDescriptor.is_assignable_from."""

    def test_subclass(self):
        assert TypeDescriptor(object).is_assignable_from(TypeDescriptor(int))
        assert TypeDescriptor(int).is_assignable_from(TypeDescriptor(bool))
        assert not TypeDescriptor(int).is_assignable_from(TypeDescriptor(str))

    def test_type_parameters(self):
        assert TypeDescriptor.of(List[object]).is_assignable_from(TypeDescriptor.of(List[int]))
        assert not TypeDescriptor.of(List[int]).is_assignable_from(TypeDescriptor.of(List[str]))

    def test_raw_accepts_parameterized(self):
        assert TypeDescriptor(list).is_assignable_from(TypeDescriptor.of(List[str]))


class TestAnnotationHelpers:
    """Tests for the annotation helper functions."""

    def test_strip_annotation(self):
        assert strip_annotation(Annotated[Optional[int], Id()]) is int
        assert strip_annotation(ClassVar[int]) is int

    def test_annotation_markers(self):
        assert annotation_markers(Annotated[int, Id(), Property("x")]) == (Id(), Property("x"))
        assert annotation_markers(int) == ()

    def test_is_class_var(self):
        assert is_class_var(ClassVar[int])
        assert not is_class_var(int)


class TestTypeParameterMap:
    """Tests for TypeParameterMap."""

    def test_whole_property(self):
        mapping = TypeParameterMap.for_annotation(T, (K, T))
        assert mapping.property_to_class_param_index == {TypeParameterMap.WHOLE_PROPERTY: 1}
        assert mapping.has_type_parameters

    def test_type_arguments(self):
        mapping = TypeParameterMap.for_annotation(Dict[K, List[int]], (K, T))
        assert mapping.property_to_class_param_index == {0: 0}

    def test_no_parameters(self):
        mapping = TypeParameterMap.for_annotation(List[int], (T,))
        assert not mapping.has_type_parameters

    def test_whole_and_arguments_conflict(self):
        with pytest.raises(DefinitionException) as exc_info:
            TypeParameterMap.builder().add_index(0).add_index(1, 0).build()
        assert "generic field that also has type parameters" in str(exc_info.value)

    def test_equality(self):
        assert TypeParameterMap({0: 1}) == TypeParameterMap({0: 1})
        assert hash(TypeParameterMap({0: 1})) == hash(TypeParameterMap({0: 1}))


class TestGenericClasses:
    """Tests for generic class introspection."""

    def test_class_type_parameters(self):
        assert class_type_parameters(Pair) == (K, T)
        assert class_type_parameters(IntStringPair) == ()

    def test_base_type_var_substitutions(self):
        substitutions = base_type_var_substitutions(IntStringPair)
        assert substitutions[StringPair] == {T: int}
        assert substitutions[Pair] == {K: str, T: int}
