"""Recursive descent parser for awk programs.

Expression precedence, lowest first::

    assignment  = += -= *= /= %= ^=   (right)
    ternary     ?:                     (right)
    or          ||
    and         &&
    in          expr in array
    match       ~ !~
    comparison  < <= > >= == !=
    pipe        cmd | getline
    concat      juxtaposition
    additive    + -
    multiply    * / %
    unary       ! - +
    power       ^                      (right)
    postfix     ++ --
    primary     $expr, literals, names, calls, (grouping)

Inside an unparenthesized print list ``>`` is an output redirection, not a
comparison.
"""

from typing import Optional

from . import ast
from .lexer import tokenize
from .types import ASSIGN_OPS, AwkSyntaxError, Token, TokenType

BUILTIN_FUNCTIONS = frozenset({
    "length", "substr", "index", "split", "sub", "gsub", "match",
    "tolower", "toupper", "sprintf", "sin", "cos", "atan2", "exp",
    "log", "sqrt", "int", "rand", "srand", "system", "close", "fflush",
})

_TERMINATORS = (TokenType.NEWLINE, TokenType.SEMICOLON)

_COMPARISONS = {
    TokenType.LT: "<",
    TokenType.LE: "<=",
    TokenType.GT: ">",
    TokenType.GE: ">=",
    TokenType.EQ: "==",
    TokenType.NE: "!=",
}

# Tokens that may begin the right operand of an implicit concatenation.
_CONCAT_START = frozenset({
    TokenType.NUMBER,
    TokenType.STRING,
    TokenType.REGEX,
    TokenType.IDENTIFIER,
    TokenType.FIELD,
    TokenType.LPAREN,
    TokenType.INCREMENT,
    TokenType.DECREMENT,
})

_LVALUES = (ast.Variable, ast.FieldRef, ast.ArrayRef)


class Parser:
    """Builds an ``ast.Program`` from a token list."""

    def __init__(self, tokens: list[Token]):
        self.tokens = tokens
        self.pos = 0
        # True while parsing the unparenthesized expression list of print
        self.in_print = False

    def peek(self, offset: int = 0) -> Token:
        idx = min(self.pos + offset, len(self.tokens) - 1)
        return self.tokens[idx]

    def advance(self) -> Token:
        tok = self.peek()
        if tok.type != TokenType.EOF:
            self.pos += 1
        return tok

    def check(self, *types: TokenType) -> bool:
        return self.peek().type in types

    def match(self, *types: TokenType) -> Optional[Token]:
        if self.check(*types):
            return self.advance()
        return None

    def expect(self, type_: TokenType, what: str) -> Token:
        if not self.check(type_):
            raise self.error(f"expected {what}")
        return self.advance()

    def error(self, message: str, tok: Optional[Token] = None) -> AwkSyntaxError:
        tok = tok or self.peek()
        if tok.type == TokenType.EOF:
            found = "end of input"
        elif tok.type == TokenType.NEWLINE:
            found = "newline"
        else:
            found = f"'{tok.value}'"
        return AwkSyntaxError(f"{message}, found {found}", tok.line, tok.column)

    def skip_newlines(self) -> None:
        while self.match(TokenType.NEWLINE):
            pass

    def skip_terminators(self) -> None:
        while self.match(*_TERMINATORS):
            pass

    # Program structure

    def parse(self) -> ast.Program:
        program = ast.Program()
        self.skip_terminators()
        while not self.check(TokenType.EOF):
            self.parse_item(program)
            self.skip_terminators()
        return program

    def parse_item(self, program: ast.Program) -> None:
        if self.match(TokenType.BEGIN):
            self.skip_newlines()
            program.begin.append(self.parse_block())
        elif self.match(TokenType.END):
            self.skip_newlines()
            program.end.append(self.parse_block())
        elif self.check(TokenType.FUNCTION):
            function = self.parse_function()
            if function.name in program.functions:
                raise AwkSyntaxError(f"function '{function.name}' redefined")
            program.functions[function.name] = function
        elif self.check(TokenType.LBRACE):
            program.rules.append(ast.Rule(pattern=None, action=self.parse_block()))
        else:
            pattern: ast.Expr | ast.RangePattern = self.parse_expr()
            if self.match(TokenType.COMMA):
                self.skip_newlines()
                pattern = ast.RangePattern(start=pattern, end=self.parse_expr())
            action = self.parse_block() if self.check(TokenType.LBRACE) else None
            if action is None:
                self.expect_end_of_statement()
            program.rules.append(ast.Rule(pattern=pattern, action=action))

    def parse_function(self) -> ast.Function:
        self.expect(TokenType.FUNCTION, "function")
        name_tok = self.advance()
        if name_tok.type != TokenType.IDENTIFIER:
            raise self.error("expected function name", name_tok)
        if name_tok.value in BUILTIN_FUNCTIONS:
            raise self.error("cannot redefine built-in function", name_tok)
        self.expect(TokenType.LPAREN, "'('")
        params: list[str] = []
        if not self.check(TokenType.RPAREN):
            while True:
                self.skip_newlines()
                param = self.expect(TokenType.IDENTIFIER, "parameter name")
                if param.value in params:
                    raise self.error(f"duplicate parameter '{param.value}'", param)
                params.append(param.value)
                if not self.match(TokenType.COMMA):
                    break
        self.skip_newlines()
        self.expect(TokenType.RPAREN, "')'")
        self.skip_newlines()
        return ast.Function(name=name_tok.value, params=params, body=self.parse_block())

    def parse_block(self) -> ast.Block:
        self.expect(TokenType.LBRACE, "'{'")
        statements: list[ast.Stmt] = []
        self.skip_terminators()
        while not self.check(TokenType.RBRACE):
            if self.check(TokenType.EOF):
                raise self.error("missing '}'")
            statements.append(self.parse_statement())
            self.skip_terminators()
        self.advance()
        return ast.Block(statements)

    # Statements

    def expect_end_of_statement(self) -> None:
        if not self.check(TokenType.NEWLINE, TokenType.SEMICOLON, TokenType.RBRACE, TokenType.EOF):
            raise self.error("unexpected token")

    def parse_statement(self) -> ast.Stmt:
        tok = self.peek()
        if tok.type == TokenType.LBRACE:
            return self.parse_block()
        if tok.type == TokenType.SEMICOLON:
            self.advance()
            return ast.Block()
        if tok.type == TokenType.IF:
            return self.parse_if()
        if tok.type == TokenType.WHILE:
            self.advance()
            self.expect(TokenType.LPAREN, "'('")
            condition = self.parse_expr()
            self.expect(TokenType.RPAREN, "')'")
            if self.match(TokenType.SEMICOLON):
                return ast.While(condition, ast.Block())
            self.skip_newlines()
            return ast.While(condition, self.parse_statement())
        if tok.type == TokenType.DO:
            self.advance()
            self.skip_newlines()
            body = self.parse_statement()
            self.skip_terminators()
            self.expect(TokenType.WHILE, "'while'")
            self.expect(TokenType.LPAREN, "'('")
            condition = self.parse_expr()
            self.expect(TokenType.RPAREN, "')'")
            self.expect_end_of_statement()
            return ast.DoWhile(body, condition)
        if tok.type == TokenType.FOR:
            return self.parse_for()

        stmt = self.parse_simple_statement()
        self.expect_end_of_statement()
        return stmt

    def parse_simple_statement(self) -> ast.Stmt:
        tok = self.peek()
        if tok.type in (TokenType.PRINT, TokenType.PRINTF):
            return self.parse_print()
        if tok.type == TokenType.BREAK:
            self.advance()
            return ast.Break()
        if tok.type == TokenType.CONTINUE:
            self.advance()
            return ast.Continue()
        if tok.type == TokenType.NEXT:
            self.advance()
            return ast.Next()
        if tok.type == TokenType.EXIT:
            self.advance()
            return ast.Exit(None if self.at_statement_end() else self.parse_expr())
        if tok.type == TokenType.RETURN:
            self.advance()
            return ast.Return(None if self.at_statement_end() else self.parse_expr())
        if tok.type == TokenType.DELETE:
            self.advance()
            name = self.expect(TokenType.IDENTIFIER, "array name").value
            if self.match(TokenType.LBRACKET):
                subscripts = self.parse_expr_list(TokenType.RBRACKET)
                self.expect(TokenType.RBRACKET, "']'")
                return ast.Delete(name, subscripts)
            return ast.Delete(name)
        return ast.ExprStmt(self.parse_expr())

    def at_statement_end(self) -> bool:
        return self.check(TokenType.NEWLINE, TokenType.SEMICOLON, TokenType.RBRACE, TokenType.EOF)

    def parse_if(self) -> ast.If:
        self.advance()
        self.expect(TokenType.LPAREN, "'('")
        condition = self.parse_expr()
        self.expect(TokenType.RPAREN, "')'")
        self.skip_newlines()
        then = self.parse_statement()

        mark = self.pos
        self.skip_terminators()
        if self.match(TokenType.ELSE):
            self.skip_newlines()
            return ast.If(condition, then, self.parse_statement())
        self.pos = mark
        return ast.If(condition, then)

    def parse_for(self) -> ast.Stmt:
        self.advance()
        self.expect(TokenType.LPAREN, "'('")

        if (
            self.check(TokenType.IDENTIFIER)
            and self.peek(1).type == TokenType.IN
            and self.peek(2).type == TokenType.IDENTIFIER
            and self.peek(3).type == TokenType.RPAREN
        ):
            var = self.advance().value
            self.advance()
            array = self.advance().value
            self.advance()
            self.skip_newlines()
            return ast.ForIn(var, array, self.parse_statement())

        init = None if self.check(TokenType.SEMICOLON) else self.parse_expr()
        self.expect(TokenType.SEMICOLON, "';'")
        self.skip_newlines()
        condition = None if self.check(TokenType.SEMICOLON) else self.parse_expr()
        self.expect(TokenType.SEMICOLON, "';'")
        self.skip_newlines()
        update = None if self.check(TokenType.RPAREN) else self.parse_expr()
        self.expect(TokenType.RPAREN, "')'")
        if self.match(TokenType.SEMICOLON):
            return ast.For(init, condition, update, ast.Block())
        self.skip_newlines()
        return ast.For(init, condition, update, self.parse_statement())

    def parse_print(self) -> ast.Stmt:
        keyword = self.advance()
        args: list[ast.Expr] = []

        if self.check(TokenType.LPAREN):
            # print (a, b) > "file" groups the whole list
            mark = self.pos
            self.advance()
            grouped = self.parse_expr_list(TokenType.RPAREN)
            if self.match(TokenType.RPAREN) and (
                self.at_statement_end()
                or self.check(TokenType.GT, TokenType.APPEND, TokenType.PIPE)
            ):
                args = grouped
            else:
                self.pos = mark

        if not args and not self.at_statement_end() and not self.check(
            TokenType.GT, TokenType.APPEND, TokenType.PIPE
        ):
            saved = self.in_print
            self.in_print = True
            try:
                args = self.parse_expr_list(None)
            finally:
                self.in_print = saved

        redirect = None
        target = None
        tok = self.match(TokenType.GT, TokenType.APPEND, TokenType.PIPE)
        if tok is not None:
            redirect = tok.value
            saved = self.in_print
            self.in_print = True
            try:
                target = self.parse_concat()
            finally:
                self.in_print = saved

        if keyword.type == TokenType.PRINTF:
            if not args:
                raise self.error("printf: no format")
            return ast.Printf(args, redirect, target)
        return ast.Print(args, redirect, target)

    def parse_expr_list(self, closing: Optional[TokenType]) -> list[ast.Expr]:
        exprs: list[ast.Expr] = []
        if closing is not None and self.check(closing):
            return exprs
        exprs.append(self.parse_expr())
        while self.match(TokenType.COMMA):
            self.skip_newlines()
            exprs.append(self.parse_expr())
        return exprs

    # Expressions

    def parse_expr(self) -> ast.Expr:
        left = self.parse_ternary()
        tok = self.peek()
        if tok.type in ASSIGN_OPS:
            if not isinstance(left, _LVALUES):
                raise self.error("assignment to non-variable")
            self.advance()
            self.skip_newlines()
            return ast.Assign(ASSIGN_OPS[tok.type], left, self.parse_expr())
        return left

    def parse_ternary(self) -> ast.Expr:
        condition = self.parse_or()
        if not self.match(TokenType.QUESTION):
            return condition
        self.skip_newlines()
        then = self.parse_expr()
        self.skip_newlines()
        self.expect(TokenType.COLON, "':'")
        self.skip_newlines()
        return ast.Ternary(condition, then, self.parse_expr())

    def parse_or(self) -> ast.Expr:
        left = self.parse_and()
        while self.match(TokenType.OR):
            self.skip_newlines()
            left = ast.Logical("||", left, self.parse_and())
        return left

    def parse_and(self) -> ast.Expr:
        left = self.parse_in()
        while self.match(TokenType.AND):
            self.skip_newlines()
            left = ast.Logical("&&", left, self.parse_in())
        return left

    def parse_in(self) -> ast.Expr:
        left = self.parse_match()
        while self.match(TokenType.IN):
            array = self.expect(TokenType.IDENTIFIER, "array name").value
            if isinstance(left, ast.Grouping):
                left = ast.InExpr(left.expressions, array)
            else:
                left = ast.InExpr([left], array)
        if isinstance(left, ast.Grouping) and len(left.expressions) > 1:
            raise self.error("expression list outside of 'in'")
        return left

    def parse_match(self) -> ast.Expr:
        left = self.parse_comparison()
        while self.check(TokenType.MATCH, TokenType.NOT_MATCH):
            negated = self.advance().type == TokenType.NOT_MATCH
            left = ast.Match(negated, left, self.parse_comparison())
        return left

    def parse_comparison(self) -> ast.Expr:
        left = self.parse_pipe_getline()
        while self.check(*_COMPARISONS):
            if self.in_print and self.check(TokenType.GT):
                break
            op = _COMPARISONS[self.advance().type]
            left = ast.Binary(op, left, self.parse_pipe_getline())
        return left

    def parse_pipe_getline(self) -> ast.Expr:
        left = self.parse_concat()
        while self.check(TokenType.PIPE) and self.peek(1).type == TokenType.GETLINE:
            self.advance()
            self.advance()
            left = ast.Getline(target=self.parse_optional_lvalue(), command=left)
        return left

    def parse_concat(self) -> ast.Expr:
        left = self.parse_additive()
        while self.check(*_CONCAT_START):
            left = ast.Concat(left, self.parse_additive())
        return left

    def parse_additive(self) -> ast.Expr:
        left = self.parse_multiplicative()
        while self.check(TokenType.PLUS, TokenType.MINUS):
            op = self.advance().value
            left = ast.Binary(op, left, self.parse_multiplicative())
        return left

    def parse_multiplicative(self) -> ast.Expr:
        left = self.parse_unary()
        while self.check(TokenType.STAR, TokenType.SLASH, TokenType.PERCENT):
            op = self.advance().value
            left = ast.Binary(op, left, self.parse_unary())
        return left

    def parse_unary(self) -> ast.Expr:
        if self.match(TokenType.NOT):
            return ast.Unary("!", self.parse_unary())
        if self.match(TokenType.MINUS):
            return ast.Unary("-", self.parse_unary())
        if self.match(TokenType.PLUS):
            return ast.Unary("+", self.parse_unary())
        return self.parse_power()

    def parse_power(self) -> ast.Expr:
        base = self.parse_postfix()
        if self.match(TokenType.CARET):
            # right associative, and the exponent may carry a sign
            return ast.Binary("^", base, self.parse_unary())
        return base

    def parse_postfix(self) -> ast.Expr:
        if self.check(TokenType.INCREMENT, TokenType.DECREMENT):
            op = self.advance().value
            target = self.parse_primary()
            if not isinstance(target, _LVALUES):
                raise self.error(f"'{op}' applied to non-variable")
            return ast.IncDec(op, target, prefix=True)
        expr = self.parse_primary()
        if isinstance(expr, _LVALUES) and self.check(TokenType.INCREMENT, TokenType.DECREMENT):
            return ast.IncDec(self.advance().value, expr, prefix=False)
        return expr

    def parse_optional_lvalue(self) -> Optional[ast.Expr]:
        if self.check(TokenType.IDENTIFIER, TokenType.FIELD):
            if self.check(TokenType.IDENTIFIER) and self.peek(1).type == TokenType.LPAREN:
                return None
            return self.parse_primary()
        return None

    def parse_primary(self) -> ast.Expr:
        tok = self.peek()

        if tok.type == TokenType.NUMBER:
            self.advance()
            return ast.NumberLiteral(float(tok.value))
        if tok.type == TokenType.STRING:
            self.advance()
            return ast.StringLiteral(tok.value)
        if tok.type == TokenType.REGEX:
            self.advance()
            return ast.RegexLiteral(tok.value)
        if tok.type == TokenType.FIELD:
            self.advance()
            if self.check(TokenType.INCREMENT, TokenType.DECREMENT, TokenType.MINUS):
                return ast.FieldRef(self.parse_unary())
            return ast.FieldRef(self.parse_primary())
        if tok.type == TokenType.LPAREN:
            self.advance()
            saved = self.in_print
            self.in_print = False
            try:
                exprs = self.parse_expr_list(None)
            finally:
                self.in_print = saved
            self.expect(TokenType.RPAREN, "')'")
            return ast.Grouping(exprs)
        if tok.type == TokenType.GETLINE:
            self.advance()
            target = self.parse_optional_lvalue()
            source = None
            if self.match(TokenType.LT):
                source = self.parse_primary()
            return ast.Getline(target=target, file=source)
        if tok.type in (TokenType.NOT, TokenType.MINUS, TokenType.PLUS):
            return self.parse_unary()
        if tok.type in (TokenType.INCREMENT, TokenType.DECREMENT):
            return self.parse_postfix()
        if tok.type == TokenType.IDENTIFIER:
            self.advance()
            name = tok.value
            if self.check(TokenType.LPAREN):
                self.advance()
                saved = self.in_print
                self.in_print = False
                try:
                    args = self.parse_expr_list(TokenType.RPAREN)
                finally:
                    self.in_print = saved
                self.expect(TokenType.RPAREN, "')'")
                return ast.Call(name, args)
            if name == "length":
                return ast.Call(name, [])
            if self.match(TokenType.LBRACKET):
                saved = self.in_print
                self.in_print = False
                try:
                    subscripts = self.parse_expr_list(TokenType.RBRACKET)
                finally:
                    self.in_print = saved
                if not subscripts:
                    raise self.error("empty subscript")
                self.expect(TokenType.RBRACKET, "']'")
                return ast.ArrayRef(name, subscripts)
            return ast.Variable(name)

        raise self.error("unexpected token")


def parse_program(source: str) -> ast.Program:
    """Tokenize and parse awk source text."""
    return Parser(tokenize(source)).parse()
